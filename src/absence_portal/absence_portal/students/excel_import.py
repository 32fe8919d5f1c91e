"""Header-based spreadsheet parsing for student and parent imports.

Columns are located by their header text (case and Turkish accents are
ignored), so the sheet may carry extra columns in any order.
"""

from __future__ import annotations

import io
import logging
import re
import unicodedata
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import pandas as pd

from ..common.phone import normalize_phone
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

STUDENT_COLUMNS: Dict[str, tuple[str, ...]] = {
    "school_number": ("school number", "okul no", "okul numarasi", "ogrenci no", "numara", "no"),
    "full_name": ("full name", "adi soyadi", "ad soyad", "ogrenci adi soyadi", "name"),
    "class_name": ("class name", "class", "sinif", "sinifi", "sube"),
}

PARENT_COLUMNS: Dict[str, tuple[str, ...]] = {
    "school_number": STUDENT_COLUMNS["school_number"],
    "parent1_name": ("parent1 name", "parent 1 name", "veli 1 adi", "veli1 adi", "veli 1 adi soyadi"),
    "parent1_phone": ("parent1 phone", "parent 1 phone", "veli 1 telefon", "veli1 telefon", "veli 1 telefonu"),
    "parent2_name": ("parent2 name", "parent 2 name", "veli 2 adi", "veli2 adi", "veli 2 adi soyadi"),
    "parent2_phone": ("parent2 phone", "parent 2 phone", "veli 2 telefon", "veli2 telefon", "veli 2 telefonu"),
}


@dataclass(frozen=True)
class ParsedStudent:
    school_number: str
    full_name: str
    class_name: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ParsedParentRow:
    school_number: str
    parent1_name: str
    parent1_phone: str
    parent2_name: str = ""
    parent2_phone: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def normalize_header(value: object) -> str:
    text = str(value).replace("ı", "i").replace("İ", "i").strip().lower()
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]+", " ", text).strip()


def clean_cell(value: object) -> str:
    text = str(value if value is not None else "").strip()
    # Numeric cells typed as float in the sheet come back as e.g. "1001.0".
    if re.fullmatch(r"\d+\.0+", text):
        text = text.split(".", 1)[0]
    return text


def read_sheet(data: bytes) -> pd.DataFrame:
    try:
        return pd.read_excel(io.BytesIO(data), dtype=str, keep_default_na=False, engine="openpyxl")
    except Exception as exc:
        logger.warning("Could not read spreadsheet: %s", exc)
        raise ValidationError("The file could not be read as an Excel (.xlsx) spreadsheet.") from exc


def locate_columns(df: pd.DataFrame, aliases: Dict[str, tuple[str, ...]], required: tuple[str, ...]) -> Dict[str, str]:
    """Map each logical field to the sheet's actual column name."""
    by_header = {normalize_header(col): col for col in df.columns}
    found: Dict[str, str] = {}
    for field, names in aliases.items():
        for name in names:
            if name in by_header:
                found[field] = by_header[name]
                break
    missing = [f for f in required if f not in found]
    if missing:
        raise ValidationError(f"Missing column(s): {', '.join(missing)}.")
    return found


def _value(row: pd.Series, columns: Dict[str, str], field: str) -> str:
    column: Optional[str] = columns.get(field)
    return clean_cell(row[column]) if column is not None else ""


def parse_student_sheet(data: bytes) -> List[ParsedStudent]:
    df = read_sheet(data)
    columns = locate_columns(df, STUDENT_COLUMNS, ("school_number", "full_name", "class_name"))

    students: List[ParsedStudent] = []
    seen: set[str] = set()
    for _, row in df.iterrows():
        school_number = _value(row, columns, "school_number")
        full_name = _value(row, columns, "full_name")
        class_name = _value(row, columns, "class_name")
        if not school_number or not full_name or not class_name or school_number in seen:
            continue
        seen.add(school_number)
        students.append(ParsedStudent(school_number=school_number, full_name=full_name, class_name=class_name))
    return students


def parse_parent_sheet(data: bytes) -> List[ParsedParentRow]:
    df = read_sheet(data)
    columns = locate_columns(df, PARENT_COLUMNS, ("school_number", "parent1_name", "parent1_phone"))

    rows: List[ParsedParentRow] = []
    for _, row in df.iterrows():
        school_number = _value(row, columns, "school_number")
        parent1_name = _value(row, columns, "parent1_name")
        parent2_name = _value(row, columns, "parent2_name")
        if not school_number or (not parent1_name and not parent2_name):
            continue
        rows.append(
            ParsedParentRow(
                school_number=school_number,
                parent1_name=parent1_name,
                parent1_phone=normalize_phone(_value(row, columns, "parent1_phone")),
                parent2_name=parent2_name,
                parent2_phone=normalize_phone(_value(row, columns, "parent2_phone")),
            )
        )
    return rows
