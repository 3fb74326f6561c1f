from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date, parse_iso_datetime, parse_iso_date

JOB_STATUSES = ("QUEUED", "IN_PROGRESS", "COMPLETED")


class ServiceJob(db.Model):
    """
    Workshop work order.

    LIFECYCLE: QUEUED -> IN_PROGRESS -> COMPLETED, one direction only.
    parts_used and additional_services are only written by
    workshop_service.complete_job(), together with the status flip.

    The bill is never stored: total is derived from the frozen lines.
    """
    __tablename__ = "service_jobs"
    __table_args__ = (
        db.Index("ix_service_jobs_status", "status"),
        db.Index("ix_service_jobs_mechanic_status", "mechanic", "status"),
    )

    id = db.Column(db.String(64), primary_key=True)
    customer_name = db.Column(db.String(255), nullable=False)
    bike_model = db.Column(db.String(255), nullable=False)
    service_type = db.Column(db.String(255), nullable=False)

    # Base labor price
    service_price = db.Column(db.Integer, nullable=False)
    mechanic = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="QUEUED")
    start_time = db.Column(db.DateTime, nullable=False)
    business_date = db.Column(db.Date, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    parts_used = db.relationship(
        "JobPart",
        backref="job",
        cascade="all, delete-orphan",
        order_by="JobPart.position",
        lazy="selectin",
    )
    additional_services = db.relationship(
        "JobAdditionalService",
        backref="job",
        cascade="all, delete-orphan",
        order_by="JobAdditionalService.position",
        lazy="selectin",
    )

    @property
    def parts_total(self) -> int:
        return sum(p.price * p.quantity for p in self.parts_used)

    @property
    def services_total(self) -> int:
        return sum(s.price for s in self.additional_services)

    @property
    def total(self) -> int:
        return self.service_price + self.services_total + self.parts_total

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "bike_model": self.bike_model,
            "service_type": self.service_type,
            "service_price": self.service_price,
            "mechanic": self.mechanic,
            "status": self.status,
            "start_time": to_utc_z(self.start_time),
            "date": to_iso_date(self.business_date),
            "completed_at": to_utc_z(self.completed_at),
            "parts_used": [p.to_dict() for p in self.parts_used],
            "additional_services": [s.to_dict() for s in self.additional_services],
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceJob":
        job = cls(
            id=data["id"],
            customer_name=data["customer_name"],
            bike_model=data["bike_model"],
            service_type=data["service_type"],
            service_price=data["service_price"],
            mechanic=data["mechanic"],
            status=data["status"],
            start_time=parse_iso_datetime(data["start_time"]),
            business_date=parse_iso_date(data["date"]),
            completed_at=parse_iso_datetime(data.get("completed_at")),
        )
        job.parts_used = [
            JobPart.from_dict(p, position=i) for i, p in enumerate(data.get("parts_used") or [])
        ]
        job.additional_services = [
            JobAdditionalService.from_dict(s, position=i)
            for i, s in enumerate(data.get("additional_services") or [])
        ]
        return job


class JobPart(db.Model):
    """Part consumed by a completed job (quantity and price frozen)."""
    __tablename__ = "job_parts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.String(64), db.ForeignKey("service_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    part_id = db.Column(db.String(64), nullable=False)
    part_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "part_id": self.part_id,
            "part_name": self.part_name,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: dict, position: int = 0) -> "JobPart":
        return cls(
            position=position,
            part_id=data["part_id"],
            part_name=data["part_name"],
            quantity=data["quantity"],
            price=data["price"],
        )


class JobAdditionalService(db.Model):
    """Ad-hoc service billed on top of the base labor price."""
    __tablename__ = "job_additional_services"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.String(64), db.ForeignKey("service_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {"name": self.name, "price": self.price}

    @classmethod
    def from_dict(cls, data: dict, position: int = 0) -> "JobAdditionalService":
        return cls(position=position, name=data["name"], price=data["price"])
