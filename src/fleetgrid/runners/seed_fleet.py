import random
from datetime import date, timedelta
from typing import List

from sqlalchemy.orm import Session

from ..config.loader import get_sqlite_path, load_config_or_defaults
from ..database.sqlite_client import session_context
from ..database.vehicle_repo import create_vehicle
from ..utils.logging import get_logger
from ..vehicles.vehicle_models import FuelLevel, VehicleRecord

logger = get_logger(__name__)

SEED_USER = "seed"

_MAKES = {
    "Ford": ["Focus", "Fiesta", "Mondeo", "Kuga"],
    "Toyota": ["Corolla", "Yaris", "RAV4", "Prius"],
    "Volkswagen": ["Golf", "Polo", "Passat"],
    "Skoda": ["Octavia", "Fabia", "Superb"],
    "Renault": ["Clio", "Megane", "Captur"],
    "Volvo": ["V60", "XC40", "XC90"],
}


def build_demo_vehicles(count: int, seed: int = 7) -> List[VehicleRecord]:
    """Deterministic demo fleet: same seed, same vehicles."""
    rng = random.Random(seed)
    makes = sorted(_MAKES)
    vehicles = []
    for i in range(count):
        brand = rng.choice(makes)
        registered = date(2015, 1, 1) + timedelta(days=rng.randrange(0, 3650))
        vehicles.append(
            VehicleRecord(
                license_number=f"{rng.choice('ABCDEFGHJKLMNPRSTUVWXYZ')}{rng.choice('ABCDEFGHJKLMNPRSTUVWXYZ')}-{i + 1:04d}",
                brand=brand,
                model=rng.choice(_MAKES[brand]),
                registration_date=registered.isoformat(),
                mileage=rng.randrange(1_000, 250_000),
                tank=rng.choice(list(FuelLevel)),
            )
        )
    return vehicles


def seed_vehicles(session: Session, count: int, seed: int = 7) -> int:
    """Insert ``count`` demo vehicles in one transaction. Returns the count."""
    for record in build_demo_vehicles(count, seed=seed):
        create_vehicle(session, record, acting_user=SEED_USER)
    session.commit()
    logger.info(f"Seeded {count} vehicles")
    return count


def main(count: int = 50) -> None:
    config = load_config_or_defaults()
    sqlite_path = get_sqlite_path(config)
    with session_context(sqlite_path) as session:
        seeded = seed_vehicles(session, count)
    print(f"Seeded {seeded} vehicles into {sqlite_path}")


if __name__ == "__main__":
    main()
