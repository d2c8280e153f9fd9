# Overview: Pytest coverage for catalog services, categories, images and payload validation.

import base64
import os
from decimal import Decimal

import pytest

from martpos.models import Product
from martpos.services import category_service, products_service
from martpos.services.image_service import ImageError, resolve_image, save_data_url
from martpos.validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    enforce_rules_stock_adjust,
    validate_payload,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


class TestListProducts:

    def test_filters(self, storage, make_product):
        make_product(name="Red Lipstick", category="Cosmetics & Perfumes", stock=20)
        make_product(name="Gift Box", category="Gift Items", stock=2)
        make_product(name="Party Hat", category="Decoration Items", stock=3, low_stock_threshold=1)

        assert products_service.list_products(storage, search="lip")["count"] == 1
        assert products_service.list_products(storage, search="prd-00000002")["items"][0]["name"] == "Gift Box"
        assert products_service.list_products(storage, category="Gift Items")["count"] == 1
        assert products_service.list_products(storage, category="all")["count"] == 3

        low = products_service.list_products(storage, low_stock=True)["items"]
        assert [p["name"] for p in low] == ["Gift Box"]

    def test_low_stock_uses_threshold_inclusive(self):
        assert products_service.is_low_stock({"stock": 3, "low_stock_threshold": 3})
        assert not products_service.is_low_stock({"stock": 4, "low_stock_threshold": 3})
        assert products_service.is_low_stock({"stock": 3, "low_stock_threshold": None})


class TestWriteProducts:

    def test_create_and_update(self, storage, tmp_path):
        created = products_service.create_product(
            storage,
            {"code": "PRD-00000001", "name": "Scarf", "retail_price": Decimal("1500")},
            upload_folder=str(tmp_path),
        )
        assert created["id"] is not None
        assert created["retail_price"] == Decimal("1500.00")
        assert created["low_stock_threshold"] == 3
        assert created["discount_type"] == "percent"

        updated = products_service.update_product(
            storage, created["id"], {"stock": 12}, upload_folder=str(tmp_path)
        )
        assert updated["stock"] == 12
        assert updated["name"] == "Scarf"

    def test_duplicate_code_conflicts(self, storage, make_product, tmp_path):
        existing = make_product(code="PRD-00000007")
        with pytest.raises(ConflictError):
            products_service.create_product(
                storage, {"code": "PRD-00000007", "name": "Dup"}, upload_folder=str(tmp_path)
            )

        other = make_product()
        with pytest.raises(ConflictError):
            products_service.update_product(
                storage, other["id"], {"code": existing["code"]}, upload_folder=str(tmp_path)
            )

    def test_update_unknown_returns_none(self, storage, tmp_path):
        assert products_service.update_product(storage, 404, {"stock": 1}, upload_folder=str(tmp_path)) is None

    def test_adjust_stock(self, storage, make_product):
        product = make_product(stock=5)
        assert products_service.adjust_stock(storage, product["id"], -7)["stock"] == -2
        assert products_service.adjust_stock(storage, 404, 1) is None

    def test_next_code(self, storage, make_product):
        assert products_service.next_code(storage) == "PRD-00000001"
        make_product(code="PRD-00000041")
        make_product(code="LEGACY-1")
        assert products_service.next_code(storage) == "PRD-00000042"


class TestImages:

    def test_data_url_saved_and_removed_on_delete(self, storage, tmp_path):
        upload = str(tmp_path / "uploads")
        created = products_service.create_product(
            storage, {"code": "PRD-00000001", "name": "Doll", "image": PNG_DATA_URL}, upload_folder=upload
        )
        path = os.path.join(upload, created["image"])
        assert created["image"].endswith(".png")
        with open(path, "rb") as fh:
            assert fh.read() == PNG_BYTES

        assert products_service.delete_product(storage, created["id"], upload_folder=upload) is True
        assert not os.path.exists(path)
        assert storage.get_product(created["id"]) is None

    def test_replacing_image_removes_previous_file(self, tmp_path):
        upload = str(tmp_path)
        first = save_data_url(PNG_DATA_URL, upload)
        second = resolve_image(PNG_DATA_URL, upload, previous=first)

        assert second != first
        assert not os.path.exists(os.path.join(upload, first))
        assert os.path.exists(os.path.join(upload, second))

    def test_clearing_image(self, tmp_path):
        upload = str(tmp_path)
        first = save_data_url(PNG_DATA_URL, upload)
        assert resolve_image(None, upload, previous=first) is None
        assert not os.path.exists(os.path.join(upload, first))

    def test_external_url_kept(self, tmp_path):
        assert resolve_image("https://cdn.example.com/a.png", str(tmp_path)) == "https://cdn.example.com/a.png"

    @pytest.mark.parametrize("value", [
        "data:text/plain;base64,aGVsbG8=",
        "data:image/png;base64,%%%",
        "data:image/png,notbase64",
    ])
    def test_bad_data_urls(self, tmp_path, value):
        with pytest.raises(ImageError):
            save_data_url(value, str(tmp_path))

    def test_delete_missing_product(self, storage, tmp_path):
        assert products_service.delete_product(storage, 404, upload_folder=str(tmp_path)) is False


class TestCategories:

    def test_seeded_on_first_list(self, storage):
        categories = category_service.list_categories(storage)
        assert [c["name"] for c in categories] == list(category_service.DEFAULT_CATEGORIES)

        # Second call does not seed again
        assert len(category_service.list_categories(storage)) == len(category_service.DEFAULT_CATEGORIES)

    def test_add_and_delete(self, storage):
        created = category_service.add_category(storage, "  Toys ")
        assert created["name"] == "Toys"
        assert category_service.delete_category(storage, created["id"]) is True
        assert category_service.delete_category(storage, created["id"]) is False

    @pytest.mark.parametrize("name", ["", "   ", None, 12])
    def test_blank_rejected(self, storage, name):
        with pytest.raises(ValidationError):
            category_service.add_category(storage, name)


POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "retail_price", "stock", "discount_type"},
    required_on_create={"code", "name"},
    ignored_fields={"id"},
)


class TestValidation:

    def test_coerces_numbers(self):
        patch = validate_payload(
            model=Product,
            payload={"id": 9, "code": " PRD-1 ", "name": "Pen", "retail_price": "12.5", "stock": "4"},
            policy=POLICY,
            partial=False,
        )
        assert patch == {"code": "PRD-1", "name": "Pen", "retail_price": Decimal("12.5"), "stock": 4}

    def test_missing_required(self):
        with pytest.raises(ValidationError, match="code"):
            validate_payload(model=Product, payload={"name": "Pen"}, policy=POLICY, partial=False)

    def test_partial_skips_required(self):
        assert validate_payload(model=Product, payload={"stock": 1}, policy=POLICY, partial=True) == {"stock": 1}

    @pytest.mark.parametrize("payload", [
        {"stock": 1.5},
        {"stock": "1e3"},
        {"retail_price": "abc"},
        {"retail_price": True},
        {"name": ""},
        {"name": None},
        {"category": "Toys"},
    ])
    def test_rejects(self, payload):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload=payload, policy=POLICY, partial=True)

    def test_business_rules(self):
        with pytest.raises(ValidationError):
            enforce_rules_product({"retail_price": Decimal("-1")})
        with pytest.raises(ValidationError):
            enforce_rules_product({"discount_type": "bogo"})
        enforce_rules_product({"retail_price": Decimal("0"), "discount_type": "fixed"})

    @pytest.mark.parametrize("change", [0, None, "3", 1.0, True])
    def test_stock_change_rules(self, change):
        with pytest.raises(ValidationError):
            enforce_rules_stock_adjust(change)
