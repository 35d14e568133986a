import importlib.util
import os
import sys
from datetime import date, datetime
from pathlib import Path

import pytest

from quote_tracker import Database, Quotation, QuotationRepository


@pytest.fixture(scope="session")
def app_module(tmp_path_factory):
    data_dir = tmp_path_factory.mktemp("tracker-data")
    os.environ["QUOTATION_TRACKER_DATA_DIR"] = str(data_dir)
    os.environ["QUOTATION_TRACKER_LOG_FILE"] = "false"
    repo_root = Path(__file__).resolve().parents[1]
    app_path = repo_root / "tracker_app.py"
    spec = importlib.util.spec_from_file_location("tracker_app_for_tests", app_path)
    module = importlib.util.module_from_spec(spec)
    loader = spec.loader
    if loader is None:
        raise RuntimeError("Unable to load tracker app module for tests")
    sys.modules[spec.name] = module
    loader.exec_module(module)
    module.init_db()
    return module


@pytest.fixture()
def repository(tmp_path):
    db = Database(tmp_path / "tracker.db")
    db.init_schema()
    return QuotationRepository(db)


@pytest.fixture()
def make_quotation():
    counter = {"value": 0}

    def _make(**overrides):
        counter["value"] += 1
        values = {
            "id": f"q{counter['value']}",
            "sl_number": 400 + counter["value"],
            "date": date(2024, 3, 1),
            "time_in": datetime(2024, 3, 1, 9, 30),
            "client": "Acme",
            "item": "Widget",
            "source": "google_ads",
            "status": "pending",
        }
        values.update(overrides)
        return Quotation(**values)

    return _make


@pytest.fixture()
def quotation_fields():
    return {
        "sl_number": 400,
        "date": date(2024, 3, 1),
        "time_in": datetime(2024, 3, 1, 9, 30),
        "client": "Acme Traders",
        "item": "Diesel generator 20kVA",
        "source": "whatsapp",
        "status": "pending",
        "remarks": "",
    }
