"""
Seeds a local database with one user per office role and an active SPMS
cycle, then prints a bearer token for each user.

    python -m scripts.seed_demo
"""
from datetime import date

from hris.database import SessionLocal, init_db
from hris.models.spms_cycle import SPMSCycle
from hris.models.user import User, UserRole
from hris.services.auth import create_access_token

init_db()
db = SessionLocal()

def create_user(email, full_name, role, division):
    # Check if user already exists to avoid unique constraint errors
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        print(f"User {email} already exists. Skipping.")
        return existing_user

    user = User(
        email=email,
        full_name=full_name,
        role=role,
        division=division,
        is_active=True
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"Created {role.value} -> {email}")
    return user

def ensure_active_cycle(name, start, end):
    cycle = db.query(SPMSCycle).filter(SPMSCycle.is_active.is_(True)).first()
    if cycle:
        print(f"Active cycle '{cycle.name}' already exists. Skipping.")
        return cycle
    cycle = SPMSCycle(name=name, period_start=start, period_end=end, is_active=True)
    db.add(cycle)
    db.commit()
    print(f"Created active cycle -> {name}")
    return cycle

users = [
    create_user("head@example.com", "Provincial Assessor", UserRole.HEAD_OF_OFFICE, "Administrative Division"),
    create_user("admin@example.com", "Admin Staff", UserRole.ADMIN_STAFF, "Administrative Division"),
    create_user("chief@example.com", "Tax Mapping Chief", UserRole.DIVISION_CHIEF, "Tax Mapping Division"),
    create_user("staff@example.com", "Juan Dela Cruz", UserRole.PROJECT_STAFF, "Tax Mapping Division"),
]
ensure_active_cycle("Jan-Jun 2026", date(2026, 1, 1), date(2026, 6, 30))

for user in users:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    print(f"{user.email}: {token}")

db.close()
