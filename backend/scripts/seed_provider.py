#!/usr/bin/env python3
"""
Provider Seed Script
Creates a provider with default meal preferences, a few customers and today's
pending lunch/dinner responses, then prints a bearer token for local use.

Usage:
    python -m scripts.seed_provider <provider_name> [customer_name ...]

Example:
    python -m scripts.seed_provider "Annapurna Tiffins" Asha Ravi Meena
"""
import sys
import os
from uuid import uuid4

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.database import SessionLocal, init_db
from app.models.db_models import ProviderDB, CustomerDB, MealType
from app.models.timing import DEFAULT_CUTOFFS
from app.auth import create_access_token
from app.services.responses import PreferenceStore, ResponseStore
from app.services.responses.timing_resolver import local_today

DEFAULT_PRICES = {
    MealType.LUNCH: 80.0,
    MealType.DINNER: 90.0,
}


def create_provider(name: str, customer_names: list) -> bool:
    """Create a provider, its customers and today's pending responses."""
    # Ensure tables exist
    init_db()

    db: Session = SessionLocal()
    try:
        existing = db.query(ProviderDB).filter(ProviderDB.name == name).first()
        if existing:
            print(f"Error: Provider '{name}' already exists (id {existing.id}).")
            print(f"  Token: {create_access_token(existing.id)}")
            return False

        provider = ProviderDB(id=str(uuid4()), name=name)
        db.add(provider)
        db.commit()

        PreferenceStore(db).update_meal_service(provider.id, {
            meal_type: {
                "enabled": True,
                "price": DEFAULT_PRICES[meal_type],
                "cutoffTime": DEFAULT_CUTOFFS[meal_type],
            }
            for meal_type in MealType
        })

        customers = []
        for index, customer_name in enumerate(customer_names, start=1):
            customer = CustomerDB(
                id=str(uuid4()),
                provider_id=provider.id,
                name=customer_name,
                phone=f"90000000{index:02d}",
            )
            db.add(customer)
            customers.append(customer)
        db.commit()

        store = ResponseStore(db)
        today = local_today()
        for meal_type in MealType:
            store.open_window(provider.id, [c.id for c in customers], today, meal_type)

        print("Provider created successfully!")
        print(f"  Id: {provider.id}")
        print(f"  Name: {name}")
        print(f"  Customers: {len(customers)}")
        print(f"  Pending responses opened for {today}")
        print(f"  Token: {create_access_token(provider.id)}")
        return True

    except Exception as e:
        print(f"Error creating provider: {e}")
        db.rollback()
        return False
    finally:
        db.close()


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    name = sys.argv[1].strip()
    customer_names = [n.strip() for n in sys.argv[2:] if n.strip()]

    if not name:
        print("Error: Provider name must not be empty.")
        sys.exit(1)

    success = create_provider(name, customer_names)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
