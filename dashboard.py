from typing import Dict

from pymongo.database import Database

from database import utcnow


def stats(db: Database) -> Dict[str, int]:
    # Independent counts, not a consistent snapshot
    return {
        "students": db["user"].count_documents({"role": "student"}),
        "faculty": db["user"].count_documents({"role": "teacher"}),
        "publishedNews": db["news"].count_documents({"isPublished": True}),
        "upcomingEvents": db["event"].count_documents({"date": {"$gte": utcnow()}}),
    }
