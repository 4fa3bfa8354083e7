"""Database row builders shared by the SQL-backed scheduling tests."""
from app.models import PhaseTemplate, PhaseTemplateItem, Project, db


def create_template(name="Barndominium", phases=(("Foundation", 5, 0), ("Framing", 10, 1))):
    """Create an active template whose items form a finish-to-start chain."""
    template = PhaseTemplate(name=name, is_active=True)
    db.session.add(template)
    db.session.flush()

    previous = None
    for sort_order, (phase_name, workdays, lag) in enumerate(phases, start=1):
        item = PhaseTemplateItem(
            template_id=template.id,
            name=phase_name,
            default_duration_days=workdays,
            predecessor_item_id=previous.id if previous else None,
            lag_days=lag,
            sort_order=sort_order,
        )
        db.session.add(item)
        db.session.flush()
        previous = item
    db.session.commit()
    return template


def create_project(name="Smith Barndo"):
    project = Project(name=name)
    db.session.add(project)
    db.session.commit()
    return project
