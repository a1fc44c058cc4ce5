from sqlalchemy.orm import Session

from faculty_chat.database.base import Base
from faculty_chat.database.session import SessionLocal, engine
from faculty_chat.models.user import DirectoryUser

DEFAULT_ROSTER = [
    {"id": "admin-uid-123", "name": "Dr. Milan Sharma (Admin)", "role": "admin", "email": "admin@faculty.edu"},
    {"id": "student-uid-987", "name": "Aarav Singh", "role": "student", "department": "Computer Science"},
    {"id": "student-uid-654", "name": "Priya Patel", "role": "student", "department": "Mathematics"},
    {"id": "faculty-milan", "name": "Dr. Milan Sharma", "role": "faculty", "designation": "Professor"},
    {"id": "faculty-anya", "name": "Dr. Anya Smith", "role": "faculty", "designation": "Associate Professor"},
    {"id": "faculty-john", "name": "Prof. John Doe", "role": "faculty", "designation": "Professor"},
    {"id": "faculty-jane", "name": "Dr. Jane Wilson", "role": "faculty", "designation": "Lecturer"},
]


def seed_directory(db: Session, roster: list[dict] = DEFAULT_ROSTER) -> int:
    created = 0
    for row in roster:
        if db.get(DirectoryUser, row["id"]):
            continue
        db.add(DirectoryUser(is_active=True, **row))
        created += 1
    db.commit()
    return created


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        count = seed_directory(db)
    finally:
        db.close()
    print(f"Seeded {count} directory users")
