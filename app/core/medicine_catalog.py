"""
Medicine catalog loaded from the bundled CSV dataset.

Provides id lookups, text search and the salt-composition / therapeutic-class
indexes that substitute matching relies on.
"""
from __future__ import annotations

import csv
import itertools
import logging
import random
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Final, Iterable, Iterator, List, Optional, Sequence, Tuple

from app.core.errors import MedicineNotFoundError


logger = logging.getLogger(__name__)


CSV_COLUMNS: Final[Sequence[str]] = (
    "name",
    "category",
    "dosage_form",
    "strength",
    "manufacturer",
    "indication",
    "classification",
)

COLUMN_DEFAULTS: Final[Dict[str, str]] = {
    "name": "Unknown Medicine",
    "category": "General",
    "dosage_form": "Tablet",
    "strength": "0 mg",
    "manufacturer": "Unknown Manufacturer",
    "indication": "General Use",
    "classification": "Over-the-Counter",
}

# Known active ingredients, matched as substrings of the lowercased name
SALT_COMPOSITION_MAP: Final[Dict[str, str]] = {
    "paracetamol": "acetaminophen",
    "acetaminophen": "acetaminophen",
    "aspirin": "acetylsalicylic acid",
    "ibuprofen": "ibuprofen",
    "amoxicillin": "amoxicillin",
    "omeprazole": "omeprazole",
    "metformin": "metformin",
    "lisinopril": "lisinopril",
    "atorvastatin": "atorvastatin",
    "simvastatin": "simvastatin",
    "amlodipine": "amlodipine",
    "losartan": "losartan",
    "hydrochlorothiazide": "hydrochlorothiazide",
    "ciprofloxacin": "ciprofloxacin",
    "azithromycin": "azithromycin",
    "cephalexin": "cephalexin",
    "doxycycline": "doxycycline",
    "prednisone": "prednisone",
    "warfarin": "warfarin",
    "insulin": "insulin",
}

DRUG_CLASS_SUFFIXES: Final[Sequence[str]] = (
    "cillin",
    "mycin",
    "profen",
    "statin",
    "nazole",
    "phen",
    "met",
    "vir",
)

SIDE_EFFECTS_BY_CATEGORY: Final[Dict[str, Tuple[str, ...]]] = {
    "Antibiotic": ("Nausea", "Diarrhea", "Stomach upset", "Allergic reactions"),
    "Analgesic": ("Drowsiness", "Stomach irritation", "Dizziness"),
    "Antipyretic": ("Nausea", "Liver damage (overdose)", "Skin rash"),
    "Antifungal": ("Headache", "Nausea", "Liver problems"),
    "Antiviral": ("Fatigue", "Headache", "Nausea"),
    "Antidepressant": ("Drowsiness", "Dry mouth", "Weight changes"),
    "Antidiabetic": ("Hypoglycemia", "Nausea", "Weight gain"),
    "Antiseptic": ("Skin irritation", "Allergic reactions"),
}
DEFAULT_SIDE_EFFECTS: Final[Tuple[str, ...]] = ("Consult doctor for side effects",)

DOSAGE_BY_FORM: Final[Dict[str, str]] = {
    "Tablet": "1-2 tablets as directed",
    "Capsule": "1 capsule as directed",
    "Syrup": "5-10ml as directed",
    "Injection": "As per medical supervision",
    "Ointment": "Apply thin layer as needed",
    "Cream": "Apply to affected area",
    "Drops": "2-3 drops as directed",
    "Inhaler": "1-2 puffs as needed",
}
DEFAULT_DOSAGE: Final[str] = "As directed by physician"

# Max daily dose assumes up to four doses a day
DOSES_PER_DAY: Final[int] = 4
DEFAULT_MAX_DAILY_DOSE: Final[str] = "2000mg"


@dataclass(frozen=True)
class Medicine:
    """A catalog entry. Immutable once loaded."""

    id: str
    name: str
    generic_name: str
    category: str
    dosage_form: str
    strength: str
    manufacturer: str
    indication: str
    classification: str
    salt_composition: str
    therapeutic_class: str
    prescription_required: bool = False
    popularity: int = 1
    description: str = ""
    side_effects: Tuple[str, ...] = ()
    dosage: str = ""
    max_daily_dose: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def extract_generic_name(medicine_name: str) -> str:
    """Strip the first known drug-class suffix from a brand name."""
    name = medicine_name or ""
    lowered = name.lower()
    for suffix in DRUG_CLASS_SUFFIXES:
        if suffix in lowered:
            stripped = re.sub(suffix, "", name, flags=re.IGNORECASE).strip()
            return stripped or name
    return name


def extract_salt_composition(medicine_name: str) -> str:
    """
    Derive the active-ingredient key used to group generic equivalents.

    Known ingredients map to their canonical salt, names sharing a drug-class
    suffix are grouped as ``<suffix>_group``, anything else keys on its own
    lowercased name so unrelated products are not merged.
    """
    name = (medicine_name or "").lower()

    for ingredient, salt in SALT_COMPOSITION_MAP.items():
        if ingredient in name:
            return salt

    for suffix in DRUG_CLASS_SUFFIXES:
        if suffix in name:
            return f"{suffix}_group"

    return name or "unknown"


def generate_side_effects(category: str) -> Tuple[str, ...]:
    return SIDE_EFFECTS_BY_CATEGORY.get(category, DEFAULT_SIDE_EFFECTS)


def generate_dosage(dosage_form: str) -> str:
    return DOSAGE_BY_FORM.get(dosage_form, DEFAULT_DOSAGE)


def calculate_max_daily_dose(strength: str) -> str:
    """Four times the mg strength, e.g. ``"500 mg"`` gives ``"2000mg"``."""
    match = re.search(r"(\d+)\s*mg", strength or "")
    if not match:
        return DEFAULT_MAX_DAILY_DOSE
    return f"{int(match.group(1)) * DOSES_PER_DAY}mg"


def build_medicine(medicine_id: str, values: Dict[str, str], popularity: int) -> Medicine:
    """Create a Medicine from raw CSV column values, filling derived fields."""
    fields = {column: (values.get(column) or "").strip() or COLUMN_DEFAULTS[column] for column in CSV_COLUMNS}
    raw_name = (values.get("name") or "").strip()

    return Medicine(
        id=medicine_id,
        name=fields["name"],
        generic_name=extract_generic_name(fields["name"]),
        category=fields["category"],
        dosage_form=fields["dosage_form"],
        strength=fields["strength"],
        manufacturer=fields["manufacturer"],
        indication=fields["indication"],
        classification=fields["classification"],
        salt_composition=extract_salt_composition(raw_name) if raw_name else "unknown",
        therapeutic_class=fields["category"],
        prescription_required="prescription" in fields["classification"].lower(),
        popularity=popularity,
        description=f"{fields['category']} medication for {fields['indication']}",
        side_effects=generate_side_effects(fields["category"]),
        dosage=generate_dosage(fields["dosage_form"]),
        max_daily_dose=calculate_max_daily_dose(fields["strength"]),
    )


def load_medicines_from_csv(csv_path: Path, rng: Optional[random.Random] = None) -> List[Medicine]:
    """
    Parse the catalog CSV.

    The header row is skipped; rows with fewer than seven values are logged
    and ignored. Ids are ``med_`` plus the 1-based data row number.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
    """
    rng = rng or random.Random()
    medicines: List[Medicine] = []

    with open(csv_path, "r", encoding="utf-8", newline="") as handle:
        reader = csv.reader(handle, skipinitialspace=True)
        next(reader, None)

        for row_number, row in enumerate(reader, start=1):
            if not any(cell.strip() for cell in row):
                continue
            if len(row) < len(CSV_COLUMNS):
                logger.warning("Skipping malformed catalog row %d: %r", row_number, row)
                continue

            values = dict(zip(CSV_COLUMNS, (cell.strip() for cell in row)))
            medicine_id = f"med_{row_number:05d}"
            medicines.append(build_medicine(medicine_id, values, rng.randint(1, 100)))

    logger.info("Loaded %d medicines from %s", len(medicines), csv_path)
    return medicines


class MedicineCatalog:
    """
    Read-mostly index over the medicine catalog.

    The only mutation is appending custom entries registered by pharmacies.
    """

    def __init__(self, medicines: Iterable[Medicine] = ()):
        self._medicines: List[Medicine] = []
        self._by_id: Dict[str, Medicine] = {}
        self._by_salt: Dict[str, List[Medicine]] = {}
        self._by_class: Dict[str, List[Medicine]] = {}
        self._custom_ids = itertools.count(1)

        for medicine in medicines:
            self._index(medicine)

    @classmethod
    def from_csv(cls, csv_path: Path, rng: Optional[random.Random] = None) -> "MedicineCatalog":
        return cls(load_medicines_from_csv(csv_path, rng=rng))

    def _index(self, medicine: Medicine) -> None:
        if medicine.id in self._by_id:
            raise ValueError(f"Duplicate medicine id {medicine.id}")
        self._medicines.append(medicine)
        self._by_id[medicine.id] = medicine
        self._by_salt.setdefault(medicine.salt_composition.lower(), []).append(medicine)
        self._by_class.setdefault(medicine.therapeutic_class.lower(), []).append(medicine)

    def __len__(self) -> int:
        return len(self._medicines)

    def __iter__(self) -> Iterator[Medicine]:
        return iter(list(self._medicines))

    def __contains__(self, medicine_id: object) -> bool:
        return medicine_id in self._by_id

    def get_medicine_by_id(self, medicine_id: str) -> Optional[Medicine]:
        return self._by_id.get(medicine_id)

    def require_medicine(self, medicine_id: str) -> Medicine:
        """
        Raises:
            MedicineNotFoundError: If the id is not in the catalog.
        """
        medicine = self._by_id.get(medicine_id)
        if medicine is None:
            raise MedicineNotFoundError(medicine_id)
        return medicine

    def find_by_name(self, name: str) -> Optional[Medicine]:
        """Case-insensitive exact name match."""
        normalized = (name or "").strip().lower()
        if not normalized:
            return None
        for medicine in self._medicines:
            if medicine.name.lower() == normalized:
                return medicine
        return None

    def search_medicines(self, query: str, limit: int = 10) -> List[Medicine]:
        """
        Case-insensitive substring search over name, generic name, category
        and indication, in catalog order.

        Raises:
            ValueError: If the query is blank or the limit is not positive.
        """
        if not isinstance(query, str) or not query.strip():
            raise ValueError("Search query is required")
        if limit <= 0:
            raise ValueError("limit must be greater than 0")

        term = query.strip().lower()
        results: List[Medicine] = []
        for medicine in self._medicines:
            haystack = (medicine.name, medicine.generic_name, medicine.category, medicine.indication)
            if any(term in field.lower() for field in haystack):
                results.append(medicine)
                if len(results) >= limit:
                    break
        return results

    def popular_medicines(self, limit: int = 20) -> List[Medicine]:
        return sorted(self._medicines, key=lambda m: m.popularity, reverse=True)[:limit]

    def medicines_with_salt(self, salt_composition: str) -> List[Medicine]:
        return list(self._by_salt.get(salt_composition.lower(), []))

    def medicines_in_class(self, therapeutic_class: str) -> List[Medicine]:
        return list(self._by_class.get(therapeutic_class.lower(), []))

    def add_custom_medicine(self, name: str) -> Medicine:
        """
        Register a medicine a pharmacy stocks that the dataset does not know.

        Raises:
            ValueError: If the name is blank.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Medicine name cannot be empty")

        medicine_id = f"med_custom_{next(self._custom_ids)}"
        while medicine_id in self._by_id:
            medicine_id = f"med_custom_{next(self._custom_ids)}"

        name = name.strip()
        medicine = Medicine(
            id=medicine_id,
            name=name,
            generic_name=name,
            category="Custom",
            dosage_form="Tablet",
            strength="N/A",
            manufacturer="Local Pharmacy",
            indication="General",
            classification="Over-the-Counter",
            salt_composition="n/a",
            therapeutic_class="General",
            prescription_required=False,
            popularity=1,
            description=f"Custom entry for {name}",
            side_effects=DEFAULT_SIDE_EFFECTS,
            dosage=DEFAULT_DOSAGE,
            max_daily_dose=DEFAULT_MAX_DAILY_DOSE,
        )
        self._index(medicine)
        logger.info("Registered custom medicine %s (%s)", medicine_id, name)
        return medicine


__all__ = [
    "Medicine",
    "MedicineCatalog",
    "extract_generic_name",
    "extract_salt_composition",
    "build_medicine",
    "generate_side_effects",
    "generate_dosage",
    "calculate_max_daily_dose",
    "load_medicines_from_csv",
]
