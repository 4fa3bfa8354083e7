"""
Migration script to create the phase scheduling tables and the default template.

Creates (when missing): projects, holidays, phase_templates, phase_template_items,
project_phases, phase_dependencies, project_schedules, global_exceptions,
project_exceptions, activities. Then provisions the 'Barndominium' phase
template if no template with that name exists.

Run this script with:
    python migrations/create_scheduling_tables.py [--skip-template]

The script is idempotent and safe to run multiple times.
"""

import argparse
import sys
import os

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from app.models import db, PhaseTemplate, PhaseTemplateItem
from sqlalchemy import inspect

SCHEDULING_TABLES = [
    'projects',
    'holidays',
    'phase_templates',
    'phase_template_items',
    'project_phases',
    'phase_dependencies',
    'project_schedules',
    'global_exceptions',
    'project_exceptions',
    'activities',
]

# (name, workdays, color) in build order; each phase follows the previous one
BARNDOMINIUM_PHASES = [
    ("Permits & Planning", 5, "bg-gray-500"),
    ("Site Preparation", 10, "bg-yellow-500"),
    ("Exterior Framing", 10, "bg-blue-500"),
    ("Roofing & Siding", 10, "bg-green-500"),
    ("Interior Systems", 50, "bg-purple-500"),
    ("Finishing", 15, "bg-indigo-500"),
]


def missing_tables():
    inspector = inspect(db.engine)
    existing = set(inspector.get_table_names())
    return [name for name in SCHEDULING_TABLES if name not in existing]


def provision_template(name, phases):
    """Create an active template with a finish-to-start chain of items. Returns False if it exists."""
    if PhaseTemplate.query.filter_by(name=name).first():
        print(f"✓ Template '{name}' already exists. Nothing to do.")
        return False

    template = PhaseTemplate(name=name, description=f"Default {name} build sequence", is_active=True)
    db.session.add(template)
    db.session.flush()

    previous = None
    for sort_order, (phase_name, workdays, color) in enumerate(phases, start=1):
        item = PhaseTemplateItem(
            template_id=template.id,
            name=phase_name,
            default_duration_days=workdays,
            default_color=color,
            predecessor_item_id=previous.id if previous else None,
            lag_days=0,
            sort_order=sort_order,
        )
        db.session.add(item)
        db.session.flush()
        previous = item

    db.session.commit()
    print(f"✓ Created template '{name}' with {len(phases)} items")
    return True


def migrate(skip_template=False):
    """Create the scheduling tables if they don't exist, then the default template."""
    app = create_app()

    with app.app_context():
        to_create = missing_tables()
        if not to_create:
            print("✓ All scheduling tables already exist.")
        else:
            print(f"Creating tables: {', '.join(to_create)}")

        try:
            db.create_all()

            still_missing = missing_tables()
            if still_missing:
                print(f"✗ ERROR: Tables still missing after create: {', '.join(still_missing)}")
                return False

            if not skip_template:
                provision_template(app.config.get("DEFAULT_PHASE_TEMPLATE", "Barndominium"), BARNDOMINIUM_PHASES)

        except Exception as e:
            print(f"✗ ERROR: Migration failed: {e}")
            db.session.rollback()
            return False

        return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create phase scheduling tables.")
    parser.add_argument(
        "--skip-template",
        action="store_true",
        help="Do not provision the default phase template.",
    )
    args = parser.parse_args()

    success = migrate(skip_template=args.skip_template)
    sys.exit(0 if success else 1)
