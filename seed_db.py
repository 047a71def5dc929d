from datetime import timedelta

import auth
import models
from config import Settings
from database import Database


def get_or_create_user(db, name, email, password, role):
    user = db.query(models.User).filter(models.User.email == email).first()
    if not user:
        user = models.User(
            name=name,
            email=email,
            password=auth.get_password_hash(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        print(f"Created {role}: {name} ({email})")
    return user


def seed_data(database):
    db = database.session()
    try:
        # Check if we already have reports
        if db.query(models.Report).count() > 0:
            print("Database already has data.")
            return

        citizen = get_or_create_user(db, "Asha Citizen", "citizen@ecobhandu.org", "secret123", "citizen")
        volunteer = get_or_create_user(db, "Ravi Volunteer", "volunteer@ecobhandu.org", "secret123", "volunteer")
        get_or_create_user(db, "Admin User", "admin@ecobhandu.org", "adminsecret", "admin")

        print(f"Seeding reports for user: {citizen.name}...")

        now = models.utcnow()
        reports = [
            models.Report(
                user_id=citizen.id,
                user_name=citizen.name,
                user_email=citizen.email,
                category="Garbage Dumping",
                description="Overflowing waste pile next to the lake walking path. Attracting stray dogs.",
                severity="Major",
                is_urgent=False,
                location="Lake Road, Ward 12",
                latitude=22.5726,
                longitude=88.3639,
                status="Pending",
                created_at=now - timedelta(days=2),
                updated_at=now - timedelta(days=2),
            ),
            models.Report(
                user_id=citizen.id,
                user_name=citizen.name,
                user_email=citizen.email,
                category="Water Pollution",
                description="Oily discharge flowing into the canal from a drain outlet.",
                severity="Critical",
                is_urgent=True,
                location="Canal Bank, Sector 5",
                latitude=22.5810,
                longitude=88.4310,
                status="In Progress",
                assigned_to=volunteer.id,
                created_at=now - timedelta(days=1),
                updated_at=now - timedelta(hours=3),
            ),
            models.Report(
                user_id=citizen.id,
                user_name=citizen.name,
                user_email=citizen.email,
                category="Tree Damage",
                description="Fallen branch blocking the footpath after the storm.",
                severity="Minor",
                is_urgent=False,
                location="Park Street",
                latitude=22.5535,
                longitude=88.3520,
                status="Resolved",
                assigned_to=volunteer.id,
                resolved_at=now - timedelta(hours=5),
                resolved_by=volunteer.id,
                resolution_notes="Branch cleared and moved to the compost yard.",
                created_at=now - timedelta(days=3),
                updated_at=now - timedelta(hours=5),
            ),
        ]

        for report in reports:
            db.add(report)
        citizen.total_reports = (citizen.total_reports or 0) + len(reports)
        citizen.last_report_date = now
        db.commit()

        for report in reports:
            print(f"Added: {report.category} ({report.id})")
        print("Seeding Complete!")
    finally:
        db.close()


if __name__ == "__main__":
    database = Database(Settings().database_url)
    database.open()
    try:
        seed_data(database)
    finally:
        database.close()
