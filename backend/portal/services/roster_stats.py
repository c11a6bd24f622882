"""
Statistics over the Misc member roster and the Parts roster
"""
from collections import OrderedDict
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from portal.models import Member, Part


def _avg(value) -> float:
    return round(float(value), 2) if value is not None else 0


def member_summary(db: Session) -> Dict[str, Any]:
    """Counts by gender and section. Unknown ages are left out of the averages."""
    total = db.query(func.count(Member.id)).scalar() or 0
    male = db.query(func.count(Member.id)).filter(Member.gender == "M").scalar() or 0
    female = db.query(func.count(Member.id)).filter(Member.gender == "F").scalar() or 0
    average_age = db.query(func.avg(Member.age)).scalar()

    rows = (
        db.query(
            Member.section,
            func.count(Member.id),
            func.avg(Member.age),
            func.coalesce(func.sum(Member.persons), 0),
        )
        .group_by(Member.section)
        .order_by(Member.section)
        .all()
    )

    return {
        "summary": {
            "totalMembers": total,
            "maleCount": male,
            "femaleCount": female,
            "averageAge": _avg(average_age),
        },
        "sectionStats": [
            {"_id": section, "count": count, "avgAge": _avg(avg_age), "totalPersons": int(persons or 0)}
            for section, count, avg_age, persons in rows
        ],
    }


def parts_summary(parts: List[Part]) -> Dict[str, Any]:
    """Per-section entry counts and person totals. Entries without persons are cancelled."""
    sections: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for part in sorted(parts, key=lambda p: (p.section, p.created_at)):
        stats = sections.setdefault(part.section, {
            "section": part.section,
            "sectionDescription": "",
            "entries": 0,
            "activeEntries": 0,
            "totalPersons": 0,
        })
        if not stats["sectionDescription"] and part.section_description:
            stats["sectionDescription"] = part.section_description
        stats["entries"] += 1
        if part.is_active:
            stats["activeEntries"] += 1
            stats["totalPersons"] += part.no_of_persons

    section_list = list(sections.values())
    return {
        "sections": section_list,
        "totals": {
            "sections": len(section_list),
            "entries": sum(s["entries"] for s in section_list),
            "activeEntries": sum(s["activeEntries"] for s in section_list),
            "totalPersons": sum(s["totalPersons"] for s in section_list),
        },
    }
