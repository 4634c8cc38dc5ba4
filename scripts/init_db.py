"""
Database initialization script
Creates tables and the admin hierarchy: global admin, then per-city and
per-department admins for the seeded cities
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.core.database import SessionLocal, engine, Base
from app.core.location_resolution import GLOBAL_CITY
from app.models.complaint import Department
from app.models.user import User, UserRole

# Create all tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

SEED_CITIES = ["Delhi", "Mumbai", "Prayagraj", "Chennai", "Jaipur"]


def _ensure_user(email: str, **fields) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        print(f"[OK] {email} already exists")
        return user
    user = User(email=email, is_active=True, **fields)
    db.add(user)
    db.commit()
    print(f"[OK] Created {fields['role'].value}: {email} ({fields.get('city')})")
    return user


def init_global_admin():
    """Create the global admin, last stop of every escalation chain"""
    _ensure_user(
        "admin@civictracker.in",
        name="Global Administrator",
        role=UserRole.ADMIN,
        city=GLOBAL_CITY,
    )


def init_city_admins():
    """Create a city admin and one admin per department for each seeded city"""
    for city in SEED_CITIES:
        slug = city.lower()
        _ensure_user(
            f"admin.{slug}@civictracker.in",
            name=f"{city} City Administrator",
            role=UserRole.ADMIN,
            city=city,
        )
        for department in Department:
            _ensure_user(
                f"{department.value.lower()}.{slug}@civictracker.in",
                name=f"{city} {department.value} Administrator",
                role=UserRole.ADMIN,
                city=city,
                department=department,
            )


def main():
    """Run all initialization"""
    print("Initializing database...")
    print()

    init_global_admin()
    print()
    init_city_admins()
    print()

    print("[OK] Database initialization complete!")


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        db.rollback()
    finally:
        db.close()
