from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()


def _iso(value):
    return value.isoformat() if value else None


class Project(db.Model):
    """A customer build. Scheduling only needs its identity."""
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(256), nullable=False)
    code = db.Column(db.String(32), nullable=True)
    customer_name = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Project {self.id} - {self.code or self.name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'customer_name': self.customer_name,
        }


class Holiday(db.Model):
    """Calendar exception date. Rows flagged is_working_day stay workdays."""
    __tablename__ = "holidays"

    id = db.Column(db.Integer, primary_key=True)
    holiday_date = db.Column(db.Date, nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=True)
    is_working_day = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Holiday {self.holiday_date} - {self.name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'holiday_date': _iso(self.holiday_date),
            'name': self.name,
            'is_working_day': self.is_working_day,
        }


class PhaseTemplate(db.Model):
    """Named building-type template (e.g. 'Barndominium')."""
    __tablename__ = "phase_templates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    items = db.relationship(
        "PhaseTemplateItem",
        backref="template",
        order_by="PhaseTemplateItem.sort_order",
        lazy="select",
    )

    def __repr__(self):
        return f"<PhaseTemplate {self.name}>"


class PhaseTemplateItem(db.Model):
    __tablename__ = "phase_template_items"

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.Integer, db.ForeignKey("phase_templates.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    default_duration_days = db.Column(db.Integer, nullable=False, default=0)
    default_color = db.Column(db.String(32), nullable=True)
    predecessor_item_id = db.Column(db.Integer, db.ForeignKey("phase_template_items.id"), nullable=True)
    lag_days = db.Column(db.Integer, nullable=False, default=0)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<PhaseTemplateItem {self.sort_order} - {self.name}>"


class ProjectPhase(db.Model):
    """Concrete, dated phase of one project."""
    __tablename__ = "project_phases"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    template_item_id = db.Column(db.Integer, db.ForeignKey("phase_template_items.id"), nullable=True)
    name = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="Planned")
    start_date = db.Column(db.Date, nullable=True, index=True)
    end_date = db.Column(db.Date, nullable=True)
    duration_days = db.Column(db.Integer, nullable=False, default=0)
    publish_to_customer = db.Column(db.Boolean, nullable=False, default=False)
    color = db.Column(db.String(32), nullable=True)
    internal_notes = db.Column(db.Text, nullable=True)
    customer_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ProjectPhase {self.id} - {self.name} ({self.start_date}→{self.end_date})>"

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'template_item_id': self.template_item_id,
            'name': self.name,
            'status': self.status,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'duration_days': self.duration_days,
            'publish_to_customer': self.publish_to_customer,
            'color': self.color,
        }


class PhaseDependency(db.Model):
    """Finish-to-start edge between two phases of the same project."""
    __tablename__ = "phase_dependencies"
    __table_args__ = (
        db.UniqueConstraint("predecessor_phase_id", "successor_phase_id", name="_phase_dependency_uc"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    predecessor_phase_id = db.Column(db.Integer, db.ForeignKey("project_phases.id"), nullable=False)
    successor_phase_id = db.Column(db.Integer, db.ForeignKey("project_phases.id"), nullable=False)
    type = db.Column(db.String(4), nullable=False, default="FS")
    lag_days = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<PhaseDependency {self.predecessor_phase_id}→{self.successor_phase_id} {self.type}+{self.lag_days}>"

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'predecessor_phase_id': self.predecessor_phase_id,
            'successor_phase_id': self.successor_phase_id,
            'type': self.type,
            'lag_days': self.lag_days,
        }


class ProjectSchedule(db.Model):
    """Customer-facing projection of published phases, one row per project."""
    __tablename__ = "project_schedules"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, unique=True)
    project_start_date = db.Column(db.Date, nullable=True)
    total_duration_days = db.Column(db.Integer, nullable=False, default=0)
    schedule_data = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ProjectSchedule project={self.project_id} days={self.total_duration_days}>"

    def to_dict(self):
        return {
            'project_id': self.project_id,
            'project_start_date': _iso(self.project_start_date),
            'total_duration_days': self.total_duration_days,
            'schedule_data': self.schedule_data or [],
        }


class GlobalException(db.Model):
    """Schedule-wide delay event (e.g. a weather day)."""
    __tablename__ = "global_exceptions"

    id = db.Column(db.Integer, primary_key=True)
    exception_date = db.Column(db.Date, nullable=False, index=True)
    exception_type = db.Column(db.String(32), nullable=False, default="weather")
    reason = db.Column(db.Text, nullable=False)
    delay_days = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<GlobalException {self.exception_date} {self.exception_type} +{self.delay_days}>"

    def to_dict(self):
        return {
            'id': self.id,
            'exception_date': _iso(self.exception_date),
            'exception_type': self.exception_type,
            'reason': self.reason,
            'delay_days': self.delay_days,
        }


class ProjectException(db.Model):
    """Audit snapshot of how one global exception moved one project's phases."""
    __tablename__ = "project_exceptions"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    global_exception_id = db.Column(db.Integer, db.ForeignKey("global_exceptions.id"), nullable=False, index=True)
    phases_affected = db.Column(db.JSON, nullable=False, default=list)
    delay_applied_days = db.Column(db.Integer, nullable=False)
    applied_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<ProjectException project={self.project_id} global={self.global_exception_id}>"


class Activity(db.Model):
    """Project activity feed / audit log entry."""
    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=True, index=True)
    project_name = db.Column(db.String(256), nullable=True)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(256), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=True)
    time = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<Activity {self.type} - {self.title[:50]}>"
