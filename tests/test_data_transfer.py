"""
Data export / import — round trip, text dump, CLI and script failure paths.
"""

import importlib.util
import json
import os
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from richhabits.models import db
from richhabits.models.auth import Resource
from richhabits.models.catalog import Category, Manufacturer, Product, ProductVariant
from richhabits.models.commerce import Quote
from richhabits.models.crm import Lead, Organization
from richhabits.models.design import DesignJob
from richhabits.models.manufacturing import Manufacturing
from richhabits.models.notification import Notification
from richhabits.models.order import Order, OrderLineItem
from richhabits.models.preferences import UserAppConfig
from richhabits.services.data_transfer import (
    EXPORT_NAMES,
    EXPORT_TABLES,
    export_all,
    import_all,
    read_export,
    render_text_dump,
    write_export,
)

SCRIPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "scripts")


def _load_script(name):
    spec = importlib.util.spec_from_file_location(name, os.path.join(SCRIPTS_DIR, f"{name}.py"))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def populated(seeded, make_user):
    """A small but FK-complete dataset, including the forward-pointing FKs."""
    maker = Manufacturer(name="Stitch Co")
    db.session.add(maker)
    db.session.flush()
    sales = make_user("sales")
    make_user("manufacturer", manufacturer_id=maker.id)

    org = Organization(name="Eagles Wrestling")
    db.session.add(org)
    db.session.flush()
    db.session.add(Lead(lead_code="LEAD-1", org_id=org.id, owner_user_id=sales.id))

    category = Category(name="Singlets")
    db.session.add(category)
    db.session.flush()
    product = Product(sku="PS-100", name="Pro Singlet", category_id=category.id)
    db.session.add(product)
    db.session.flush()
    variant = ProductVariant(product_id=product.id, variant_code="PS-RED")
    db.session.add(variant)

    order = Order(order_code="ORD-1", order_name="Eagles 2026", salesperson_id=sales.id,
                  estimated_delivery=date(2026, 3, 1))
    db.session.add(order)
    db.session.flush()
    db.session.add(OrderLineItem(order_id=order.id, item_name="Singlet", unit_price=Decimal("42.50"),
                                 m=4, l=6, image_url="/public-objects/abc123"))
    db.session.add(DesignJob(job_code="DJ-1", order_id=order.id, salesperson_id=sales.id))
    db.session.add(Manufacturing(order_id=order.id, manufacturer_id=maker.id))
    db.session.add(Quote(quote_code="QTE-1", quote_name="Spring", total=Decimal("100.00")))
    db.session.add(Notification(user_id=sales.id, title="Hello", meta={"orderId": order.id}))
    db.session.add(UserAppConfig(user_id=sales.id, feature_flags={"enableRoleHome": False}))
    db.session.commit()


def _counts():
    return {name: model.query.count() for name, model in EXPORT_TABLES}


# ═══════════════════════════════════════════════════════════════
# EXPORT
# ═══════════════════════════════════════════════════════════════

class TestExport:
    def test_export_keys_follow_table_order(self, populated):
        data = export_all()
        assert tuple(data) == EXPORT_NAMES

    def test_values_are_json_safe(self, populated):
        data = export_all()
        json.dumps(data)
        order = data["orders"][0]
        assert order["estimated_delivery"] == "2026-03-01"
        assert isinstance(order["created_at"], str)
        assert data["orderLineItems"][0]["unit_price"] == "42.50"
        assert data["notifications"][0]["metadata"] == {"orderId": order["id"]}

    def test_text_dump_format(self):
        text = render_text_dump(
            {"users": [{"id": 1, "email": "a@b", "manufacturer_id": None}], "leads": []},
            exported_at=datetime(2026, 1, 2, 3, 4, 5),
        )
        assert text.startswith("PRODUCTION DATABASE EXPORT\n")
        assert "Export Date: 2026-01-02T03:04:05" in text
        assert "TABLE: USERS\nTotal Records: 1" in text
        assert "--- Record 1 ---\n  id: 1\n  email: a@b\n  manufacturer_id: NULL" in text
        assert "TABLE: LEADS\nTotal Records: 0" in text

    def test_write_and_read_files(self, populated, tmp_path):
        json_path = tmp_path / "export.json"
        text_path = tmp_path / "export.txt"
        counts = write_export(str(json_path), str(text_path))

        assert counts["orders"] == 1
        assert counts["users"] == 2
        assert read_export(str(json_path))["orders"][0]["order_code"] == "ORD-1"
        assert "TABLE: ORDERS" in text_path.read_text(encoding="utf-8")


# ═══════════════════════════════════════════════════════════════
# IMPORT
# ═══════════════════════════════════════════════════════════════

class TestImport:
    def test_round_trip_preserves_row_counts(self, populated):
        before = _counts()
        data = export_all()

        counts = import_all(data)

        db.session.expire_all()
        assert counts == before
        assert _counts() == before

    def test_primary_keys_and_types_preserved(self, populated):
        data = export_all()
        order_id = data["orders"][0]["id"]
        import_all(data)

        db.session.expire_all()
        order = db.session.get(Order, order_id)
        assert order.order_code == "ORD-1"
        assert order.estimated_delivery == date(2026, 3, 1)
        assert isinstance(order.created_at, datetime)
        assert order.line_items.one().unit_price == Decimal("42.50")
        assert DesignJob.query.one().order_id == order_id

    def test_import_replaces_existing_rows(self, populated):
        data = export_all()
        db.session.add(Organization(name="Stray Org"))
        db.session.commit()

        import_all(data)
        db.session.expire_all()
        assert Organization.query.filter_by(name="Stray Org").count() == 0

    def test_tables_missing_from_export_are_left_empty(self, populated):
        data = export_all()
        data.pop("quotes")
        counts = import_all(data)
        assert counts["quotes"] == 0
        assert Quote.query.count() == 0

    def test_failed_import_rolls_back(self, populated):
        data = export_all()
        before = _counts()
        # Duplicate primary key in one table aborts the whole import
        data["resources"].append(dict(data["resources"][0]))

        with pytest.raises(IntegrityError):
            import_all(data)

        db.session.expire_all()
        assert _counts() == before
        assert Resource.query.count() == before["resources"]


# ═══════════════════════════════════════════════════════════════
# CLI + SCRIPTS
# ═══════════════════════════════════════════════════════════════

class TestCommands:
    def test_flask_export_then_import(self, app, populated, tmp_path, monkeypatch):
        monkeypatch.delenv("EXPORT_DATABASE_URL", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        runner = app.test_cli_runner()
        json_path = str(tmp_path / "dump.json")
        res = runner.invoke(args=["export-data", "--json-path", json_path,
                                  "--text-path", str(tmp_path / "dump.txt")])
        assert res.exit_code == 0, res.output
        assert "orders: 1" in res.output

        res = runner.invoke(args=["import-data", "--json-path", json_path])
        assert res.exit_code == 0, res.output

    def test_flask_import_missing_file(self, app, tmp_path):
        res = app.test_cli_runner().invoke(
            args=["import-data", "--json-path", str(tmp_path / "missing.json")],
        )
        assert res.exit_code == 1
        assert "Export file not found" in res.output

    def test_import_script_exits_1_when_file_missing(self, tmp_path):
        module = _load_script("import_data")
        assert module.main(["--json-path", str(tmp_path / "missing.json")]) == 1
