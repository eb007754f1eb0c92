import random

import pytest

from app.core import config
from app.core.errors import MedicineNotFoundError
from app.core.medicine_catalog import (
    MedicineCatalog,
    calculate_max_daily_dose,
    extract_generic_name,
    extract_salt_composition,
    generate_dosage,
    generate_side_effects,
    load_medicines_from_csv,
)


CSV_TEXT = """Name,Category,Dosage Form,Strength,Manufacturer,Indication,Classification
Paracetamol 500mg Tablet,Analgesic,Tablet,500 mg,Cipla Ltd,Fever,Over-the-Counter
Amoxicillin 250mg Capsule,Antibiotic,Capsule,250 mg,Sun Pharma,Infection,Prescription
broken,row
"Ibuprofen, Extra 400mg",Analgesic,Tablet,400 mg,Abbott India,Pain,Over-the-Counter
Mystery Tonic,,,,,,
"""


@pytest.fixture
def csv_catalog(tmp_path):
    path = tmp_path / "medicines.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    return MedicineCatalog.from_csv(path, rng=random.Random(7))


def test_load_skips_header_and_malformed_rows(csv_catalog):
    """Test CSV loading skips the header and short rows."""
    ids = [m.id for m in csv_catalog]
    assert ids == ["med_00001", "med_00002", "med_00004", "med_00005"]


def test_load_handles_quoted_commas(csv_catalog):
    """Test quoted fields containing commas are parsed whole."""
    medicine = csv_catalog.get_medicine_by_id("med_00004")
    assert medicine is not None
    assert medicine.name == "Ibuprofen, Extra 400mg"
    assert medicine.salt_composition == "ibuprofen"


def test_load_derives_fields(csv_catalog):
    """Test derived catalog fields for a loaded row."""
    amox = csv_catalog.get_medicine_by_id("med_00002")
    assert amox.therapeutic_class == "Antibiotic"
    assert amox.salt_composition == "amoxicillin"
    assert amox.prescription_required is True
    assert amox.generic_name == "Amoxi 250mg Capsule"
    assert 1 <= amox.popularity <= 100
    assert amox.description == "Antibiotic medication for Infection"
    assert amox.side_effects == ("Nausea", "Diarrhea", "Stomach upset", "Allergic reactions")
    assert amox.dosage == "1 capsule as directed"
    assert amox.max_daily_dose == "1000mg"

    para = csv_catalog.get_medicine_by_id("med_00001")
    assert para.salt_composition == "acetaminophen"
    assert para.prescription_required is False


def test_load_fills_defaults_for_empty_cells(csv_catalog):
    """Test empty CSV cells fall back to column defaults."""
    tonic = csv_catalog.get_medicine_by_id("med_00005")
    assert tonic.category == "General"
    assert tonic.dosage_form == "Tablet"
    assert tonic.strength == "0 mg"
    assert tonic.manufacturer == "Unknown Manufacturer"
    assert tonic.indication == "General Use"
    assert tonic.classification == "Over-the-Counter"
    assert tonic.salt_composition == "mystery tonic"
    assert tonic.side_effects == ("Consult doctor for side effects",)
    assert tonic.dosage == "1-2 tablets as directed"
    assert tonic.max_daily_dose == "0mg"


def test_load_missing_file_raises(tmp_path):
    """Test a missing CSV file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_medicines_from_csv(tmp_path / "missing.csv")


def test_bundled_dataset_loads():
    """Test the bundled dataset loads with unique ids."""
    catalog = MedicineCatalog.from_csv(config.MEDICINE_CSV_PATH, rng=random.Random(1))
    assert len(catalog) == 46
    assert len({m.id for m in catalog}) == len(catalog)
    for medicine in catalog:
        assert medicine.salt_composition
        assert medicine.therapeutic_class


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Paracetamol 500mg", "acetaminophen"),
        ("Disprin Aspirin", "acetylsalicylic acid"),
        ("Fluconazole 150mg", "nazole_group"),
        ("Acyclovir 400mg", "vir_group"),
        ("Clarithromycin 250mg", "mycin_group"),
        ("Sertraline 50mg", "sertraline 50mg"),
        ("", "unknown"),
    ],
)
def test_extract_salt_composition(name, expected):
    """Test active-ingredient extraction from medicine names."""
    assert extract_salt_composition(name) == expected


def test_extract_generic_name():
    """Test drug-class suffixes are stripped from brand names."""
    assert extract_generic_name("Paracetamol 500mg") == "Paracetamol 500mg"
    assert extract_generic_name("Ibuprofen") == "Ibu"
    assert extract_generic_name("Mycin") == "Mycin"


def test_get_medicine_by_id_unknown(sample_catalog):
    """Test an unknown id returns None."""
    assert sample_catalog.get_medicine_by_id("nope") is None
    assert "med_para" in sample_catalog
    assert "nope" not in sample_catalog


def test_search_matches_name_category_and_indication(sample_catalog):
    """Test search covers name, category and indication."""
    assert [m.id for m in sample_catalog.search_medicines("crocin")] == ["med_crocin"]
    assert {m.id for m in sample_catalog.search_medicines("INFECTION")} == {"med_amox"}
    assert {m.id for m in sample_catalog.search_medicines("analgesic")} == {"med_para", "med_crocin", "med_ibu"}


def test_search_respects_limit(sample_catalog):
    """Test search stops at the limit."""
    assert len(sample_catalog.search_medicines("analgesic", limit=2)) == 2


@pytest.mark.parametrize("query", ["", "   ", None])
def test_search_rejects_blank_query(sample_catalog, query):
    """Test a blank search query raises ValueError."""
    with pytest.raises(ValueError, match="Search query is required"):
        sample_catalog.search_medicines(query)  # type: ignore[arg-type]


def test_search_rejects_non_positive_limit(sample_catalog):
    """Test a non-positive limit raises ValueError."""
    with pytest.raises(ValueError):
        sample_catalog.search_medicines("para", limit=0)


def test_find_by_name_is_case_insensitive(sample_catalog):
    """Test exact name lookup ignores case."""
    assert sample_catalog.find_by_name("paracetamol 500MG tablet").id == "med_para"
    assert sample_catalog.find_by_name("Paracetamol") is None
    assert sample_catalog.find_by_name("") is None


def test_popular_medicines_sorted(medicine_factory):
    """Test popular medicines are ordered by popularity."""
    catalog = MedicineCatalog(
        [
            medicine_factory("a", "A", popularity=10),
            medicine_factory("b", "B", popularity=90),
            medicine_factory("c", "C", popularity=50),
        ]
    )
    assert [m.id for m in catalog.popular_medicines(2)] == ["b", "c"]


def test_indexes_group_by_salt_and_class(sample_catalog):
    """Test salt and class indexes group medicines."""
    assert {m.id for m in sample_catalog.medicines_with_salt("ACETAMINOPHEN")} == {"med_para", "med_crocin"}
    assert {m.id for m in sample_catalog.medicines_in_class("analgesic")} == {"med_para", "med_crocin", "med_ibu"}
    assert sample_catalog.medicines_in_class("unknown") == []


def test_add_custom_medicine(sample_catalog):
    """Test custom medicines get sequential ids and default fields."""
    medicine = sample_catalog.add_custom_medicine("  Herbal Balm ")

    assert medicine.id == "med_custom_1"
    assert medicine.name == "Herbal Balm"
    assert medicine.category == "Custom"
    assert medicine.therapeutic_class == "General"
    assert medicine.dosage == "As directed by physician"
    assert medicine.max_daily_dose == "2000mg"
    assert sample_catalog.get_medicine_by_id("med_custom_1") is medicine
    assert sample_catalog.find_by_name("herbal balm") is medicine
    assert medicine in sample_catalog.medicines_in_class("general")

    assert sample_catalog.add_custom_medicine("Second").id == "med_custom_2"


def test_add_custom_medicine_rejects_blank_name(sample_catalog):
    """Test a blank custom medicine name raises ValueError."""
    with pytest.raises(ValueError):
        sample_catalog.add_custom_medicine("  ")


def test_duplicate_ids_rejected(medicine_factory):
    """Test a catalog refuses duplicate medicine ids."""
    with pytest.raises(ValueError, match="Duplicate medicine id"):
        MedicineCatalog([medicine_factory("x", "One"), medicine_factory("x", "Two")])


def test_require_medicine(sample_catalog):
    """Test require_medicine returns the entry or raises MedicineNotFoundError."""
    assert sample_catalog.require_medicine("med_para").name == "Paracetamol 500mg Tablet"
    with pytest.raises(MedicineNotFoundError, match="Medicine med_nope not found"):
        sample_catalog.require_medicine("med_nope")


@pytest.mark.parametrize(
    "strength, expected",
    [("500 mg", "2000mg"), ("650mg", "2600mg"), ("5 ml", "2000mg"), ("N/A", "2000mg"), ("", "2000mg")],
)
def test_calculate_max_daily_dose(strength, expected):
    """Test max daily dose is four times the mg strength."""
    assert calculate_max_daily_dose(strength) == expected


def test_dosage_and_side_effect_lookups():
    """Test dosage and side-effect lookups with their fallbacks."""
    assert generate_dosage("Syrup") == "5-10ml as directed"
    assert generate_dosage("Gel") == "As directed by physician"
    assert generate_side_effects("Antiviral") == ("Fatigue", "Headache", "Nausea")
    assert generate_side_effects("Vitamin") == ("Consult doctor for side effects",)
