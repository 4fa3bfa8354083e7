"""
Rebuild customer-facing schedules from published project phases.

Usage:
    python -m app.scripts.sync_project_schedules              # every project
    python -m app.scripts.sync_project_schedules --project 12 # one project
"""

import argparse

from app import create_app
from app.logging_config import get_logger
from app.scheduling.factory import build_services
from app.scheduling.repositories import SqlAlchemyProjectStore

logger = get_logger(__name__)


def sync_all(services, project_ids):
    """Sync each project, continuing past failures. Returns (synced, failed)."""
    synced, failed = 0, []
    for project_id in project_ids:
        try:
            result = services.sync.sync_project_schedule(project_id)
            synced += 1
            print(f"[OK] project {project_id}: {result['count']} phase(s), {result['total_duration_days']} day(s)")
        except Exception as exc:
            logger.error("Schedule sync failed", project_id=project_id, error=str(exc), exc_info=True)
            failed.append(project_id)
            print(f"[ERROR] project {project_id}: {exc}")
    return synced, failed


def main() -> int:
    parser = argparse.ArgumentParser(description="Rebuild project_schedules from published phases.")
    parser.add_argument("--project", type=int, action="append", help="Project id (repeatable)")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        services = build_services(app.config)
        project_ids = args.project or [p['id'] for p in SqlAlchemyProjectStore().list_projects()]
        synced, failed = sync_all(services, project_ids)

    print(f"Synced {synced}/{len(project_ids)} project schedule(s)")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
