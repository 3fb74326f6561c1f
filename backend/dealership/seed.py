# Overview: Starting catalog and workshop crew for a fresh install.

from __future__ import annotations

from .extensions import db
from .models import Part, Technician
from .services import inventory_service, personnel_service

INITIAL_INVENTORY = [
    {"part_id": "1", "name": "Engine Oil 10W-30 (1L)", "part_number": "08232-M99-K1L", "category": "Engine", "stock": 45, "price": 1850, "min_stock": 20},
    {"part_id": "2", "name": "Front Brake Pad Set", "part_number": "06455-KRE-K01", "category": "Braking", "stock": 12, "price": 4200, "min_stock": 15},
    {"part_id": "3", "name": "Spark Plug CPR7EA-9", "part_number": "31917-KPH-901", "category": "Electrical", "stock": 80, "price": 850, "min_stock": 30},
    {"part_id": "4", "name": "Drive Chain Kit (DID)", "part_number": "06401-KWB-601", "category": "Chassis", "stock": 8, "price": 9500, "min_stock": 10},
    {"part_id": "5", "name": "Air Filter Element", "part_number": "17210-K12-900", "category": "Engine", "stock": 22, "price": 2400, "min_stock": 15},
]

INITIAL_TECHNICIANS = [
    {"technician_id": "T1", "name": "Carlos Sainz", "specialization": "Master Mechanic"},
    {"technician_id": "T2", "name": "Dave Miller", "specialization": "Electrical Expert"},
    {"technician_id": "T3", "name": "Aslam Pervaiz", "specialization": "Engine Overhaul"},
]


def seed_defaults() -> dict:
    """
    Load the starting catalog and technicians. Records that already exist
    (by id) are left alone, so this is safe to run twice.

    Returns how many records of each kind were created.
    """
    created = {"parts": 0, "technicians": 0}

    for row in INITIAL_INVENTORY:
        if db.session.get(Part, row["part_id"]) is None:
            inventory_service.create_part(**row)
            created["parts"] += 1

    for row in INITIAL_TECHNICIANS:
        if db.session.get(Technician, row["technician_id"]) is None:
            personnel_service.create_technician(**row)
            created["technicians"] += 1

    return created
