"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 4 customers and 2 drivers (password "password" for all)
  - 6 sample bookings, one per lifecycle status, each with a status log
    that walks the transition graph from ``pending``
"""

import asyncio
from datetime import datetime, timedelta, timezone

from src.domain.enums import BookingStatus, UserRole, VehicleType
from src.domain.transitions import transition_engine
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.repositories import BookingRepository, UserRepository
from src.infrastructure.security import hash_password

USERS = [
    {"username": "alice", "full_name": "Alice Carter", "email": "alice@example.com", "phone_number": "2125550101", "role": UserRole.CUSTOMER},
    {"username": "bruno", "full_name": "Bruno Silva", "email": "bruno@example.com", "phone_number": "2125550102", "role": UserRole.CUSTOMER},
    {"username": "chen", "full_name": "Chen Wei", "email": "chen@example.com", "phone_number": "2125550103", "role": UserRole.CUSTOMER},
    {"username": "dara", "full_name": "Dara Okafor", "email": "dara@example.com", "phone_number": "2125550104", "role": UserRole.CUSTOMER},
    {"username": "eli", "full_name": "Eli Novak", "email": "eli@example.com", "phone_number": "2125550201", "role": UserRole.DRIVER},
    {"username": "fatima", "full_name": "Fatima Haddad", "email": "fatima@example.com", "phone_number": "2125550202", "role": UserRole.DRIVER},
]

# Status path from ``pending`` for each sample booking
PATHS = [
    [],
    [BookingStatus.ACCEPTED],
    [BookingStatus.ACCEPTED, BookingStatus.IN_TRANSIT],
    [BookingStatus.ACCEPTED, BookingStatus.IN_TRANSIT, BookingStatus.COMPLETED],
    [BookingStatus.REJECTED],
    [BookingStatus.CANCELLED],
]

BOOKINGS = [
    {"vehicle_type": VehicleType.VAN_3_5, "pickup_location": "Brooklyn Navy Yard", "dropoff_location": "Hoboken Terminal", "pickup_coords": "40.7003,-73.9710", "dropoff_coords": "40.7359,-74.0279", "estimated_price": "120.00", "distance": "9.4 km", "duration": "28 min"},
    {"vehicle_type": VehicleType.TRUCK_7_5, "pickup_location": "Port Newark", "dropoff_location": "Queens Plaza", "pickup_coords": "40.6840,-74.1440", "dropoff_coords": "40.7489,-73.9370", "estimated_price": "310.00", "distance": "27.1 km", "duration": "51 min"},
    {"vehicle_type": VehicleType.TRUCK_18, "pickup_location": "Secaucus Yard", "dropoff_location": "Bronx Terminal Market", "pickup_coords": "40.7895,-74.0565", "dropoff_coords": "40.8270,-73.9300", "estimated_price": "640.00", "distance": "19.8 km", "duration": "44 min"},
    {"vehicle_type": VehicleType.VAN_3_5, "pickup_location": "Red Hook", "dropoff_location": "Long Island City", "pickup_coords": "40.6750,-74.0110", "dropoff_coords": "40.7447,-73.9485", "estimated_price": "140.00", "distance": "12.2 km", "duration": "33 min"},
    {"vehicle_type": VehicleType.TRUCK_7_5, "pickup_location": "Jersey City", "dropoff_location": "Staten Island", "pickup_coords": "40.7178,-74.0431", "dropoff_coords": "40.5795,-74.1502", "estimated_price": "280.00", "distance": "24.6 km", "duration": "40 min"},
    {"vehicle_type": VehicleType.VAN_3_5, "pickup_location": "Astoria", "dropoff_location": "Harlem", "pickup_coords": "40.7644,-73.9235", "dropoff_coords": "40.8116,-73.9465", "estimated_price": "95.00", "distance": "8.1 km", "duration": "22 min"},
]


async def seed():
    async with async_session_factory() as session:
        users = UserRepository(session)
        bookings = BookingRepository(session)

        # ── Users ─────────────────────────────────────────────────
        password_hash = hash_password("password")
        user_models = [
            await users.create(password_hash=password_hash, **u) for u in USERS
        ]
        customers = [u for u in user_models if u.role == UserRole.CUSTOMER]
        print(f"  Created {len(user_models)} users")

        # ── Bookings ──────────────────────────────────────────────
        started = datetime.now(timezone.utc) - timedelta(hours=6)
        for i, (payload, path) in enumerate(zip(BOOKINGS, PATHS)):
            owner = customers[i % len(customers)]
            booking = await bookings.create(
                owner.id,
                {**payload, "vehicle_type": payload["vehicle_type"].value},
            )
            transition_engine.fold(path)
            status = booking.status
            for step, target in enumerate(path, start=1):
                booking = await bookings.commit_transition(
                    booking.id,
                    target,
                    started + timedelta(minutes=20 * step),
                    expected_status=status,
                )
                status = booking.status
        await session.flush()
        print(f"  Created {len(BOOKINGS)} bookings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
