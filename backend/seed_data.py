"""Seed database with a demo academy, its venues and equipment catalog."""
from academy.database import SessionLocal
from academy.models import Organization, User, Location, Equipment
from academy.auth import create_access_token
from datetime import timedelta
import uuid

ORG_ID = uuid.UUID('00000000-0000-0000-0000-000000000001')


def seed():
    """Seed database with demo data."""
    db = SessionLocal()

    try:
        # Create organization
        org = Organization(id=ORG_ID, name="Demo Football Academy", code="DEMO")
        db.add(org)
        db.flush()

        # Create users (accounts live in the identity service; these mirror them)
        users_data = [
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000101'),
                'username': 'owner',
                'name': 'Olivia Owner',
                'initials': 'O.O.',
                'role': 'owner',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000102'),
                'username': 'coach',
                'name': 'Carlos Coach',
                'initials': 'C.C.',
                'role': 'coach',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000103'),
                'username': 'staff',
                'name': 'Sam Staff',
                'initials': 'S.S.',
                'role': 'staff',
            },
        ]

        users = {}
        for user_data in users_data:
            user = User(org_id=org.id, **user_data)
            db.add(user)
            users[user.username] = user

        # Locations
        main_pitch = Location(org_id=org.id, name="Main Pitch", address="1 Stadium Road")
        indoor_hall = Location(org_id=org.id, name="Indoor Hall")
        db.add_all([main_pitch, indoor_hall])
        db.flush()

        equipment_data = [
            {'name': 'Match ball size 5', 'brand': 'Adidas', 'model': 'Tango', 'category': 'balls',
             'total_quantity': 40, 'available_quantity': 34, 'location_id': main_pitch.id},
            {'name': 'Training ball size 4', 'brand': 'Nike', 'category': 'balls',
             'total_quantity': 25, 'available_quantity': 25, 'location_id': indoor_hall.id},
            {'name': 'Agility cones', 'category': 'cones',
             'total_quantity': 120, 'available_quantity': 120, 'location_id': main_pitch.id},
            {'name': 'Pop-up goal', 'brand': 'Kwikgoal', 'category': 'goals',
             'total_quantity': 6, 'available_quantity': 4, 'location_id': main_pitch.id,
             'condition': 'fair'},
            {'name': 'Training bibs (orange)', 'category': 'bibs',
             'total_quantity': 30, 'available_quantity': 30, 'location_id': indoor_hall.id,
             'storage_location': 'Cabinet B'},
            {'name': 'Speed ladder', 'category': 'ladders',
             'total_quantity': 8, 'available_quantity': 8, 'location_id': indoor_hall.id},
            {'name': 'First aid kit', 'category': 'medical',
             'total_quantity': 3, 'available_quantity': 3, 'location_id': None},
            {'name': 'Old rebounder', 'category': 'other',
             'total_quantity': 1, 'available_quantity': 1, 'is_active': False},
        ]

        for item_data in equipment_data:
            db.add(Equipment(org_id=org.id, **item_data))

        db.commit()
        print("✅ Database seeded successfully!")
        print("\nDev access tokens (24h):")
        for username, user in users.items():
            token = create_access_token(
                {"sub": str(user.id), "ver": user.token_version or 0},
                expires_delta=timedelta(hours=24),
            )
            print(f"  {username} ({user.role}): {token}")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
