"""
Parts roster import from Excel/CSV uploads
"""
import logging
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

# normalised header -> Part field
HEADER_MAP = {
    "section": "section",
    "sectiondescription": "section_description",
    "sectiondesc": "section_description",
    "membername": "member_name",
    "name": "member_name",
    "persons": "no_of_persons",
    "noofpersons": "no_of_persons",
    "sradam": "sradam",
    "notes": "notes",
}


def _normalise_header(header) -> str:
    return "".join(str(header).lower().split()).replace("_", "").replace(".", "")


def _text(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _persons(value) -> Optional[int]:
    text = _text(value)
    if text is None:
        return None
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        # "Cancelled" and similar markers
        return None


class PartsImporter:
    """Reads a Parts roster sheet into Part field dicts"""

    def parse(self, file_content: bytes, filename: str) -> Tuple[List[Dict], List[Dict]]:
        """
        Returns (rows, skipped). Blank lines are dropped silently; rows without a
        section or member name go to skipped with their 1-based sheet row number.
        """
        try:
            if filename.lower().endswith(".csv"):
                df = pd.read_csv(BytesIO(file_content), dtype=str)
            else:
                df = pd.read_excel(BytesIO(file_content), sheet_name=0, dtype=str)
        except Exception as e:
            logger.error(f"❌ Failed to read parts file {filename}: {e}")
            raise ValueError(f"Could not read file: {str(e)}")

        df = df.rename(columns={c: HEADER_MAP.get(_normalise_header(c), c) for c in df.columns})
        logger.info(f"Parsing parts file {filename}: {len(df)} rows")

        rows: List[Dict] = []
        skipped: List[Dict] = []
        for idx, row in df.iterrows():
            if row.isna().all():
                continue

            section = _text(row.get("section"))
            member_name = _text(row.get("member_name"))
            if not section or not member_name:
                skipped.append({"row": int(idx) + 2, "reason": "Missing section or member name"})
                continue

            persons = _persons(row.get("no_of_persons"))
            if persons is not None and persons < 0:
                skipped.append({"row": int(idx) + 2, "reason": "Invalid number of persons"})
                continue

            rows.append({
                "section": section.upper(),
                "section_description": _text(row.get("section_description")) or "",
                "member_name": member_name,
                "no_of_persons": persons,
                "sradam": _text(row.get("sradam")),
                "notes": _text(row.get("notes")),
            })

        logger.info(f"✅ Parsed {len(rows)} parts entries, skipped {len(skipped)}")
        return rows, skipped


parts_importer = PartsImporter()
