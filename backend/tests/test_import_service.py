"""
Spreadsheet import tests: row classification and per-row commits.
"""

from io import BytesIO

import pytest
from openpyxl import Workbook

from stockroom.extensions import db
from stockroom.models import Arrivage, Category, Product, StockMovement
from stockroom.services import import_service
from stockroom.services.import_service import Errored, ImportRequestError, Skipped, Valid, classify_row


class TestClassifyRow:
    def test_valid_row(self):
        outcome = classify_row({
            "name": "Nivea Soft 200ml",
            "categoryName": "Soins",
            "purchasePriceEur": "3,49 €",
            "sellingPriceDh": "89",
            "promoPriceDh": 75,
            "quantityReceived": "6",
            "quantitySold": 2,
            "purchaseSource": "action",
        })

        assert isinstance(outcome, Valid)
        record = outcome.record
        assert record.purchase_price_eur_cents == 349
        assert record.purchase_price_mad_cents is None
        assert record.selling_price_cents == 8900
        assert record.promo_price_cents == 7500
        assert (record.quantity_received, record.quantity_sold) == (6, 2)
        assert record.purchase_source == "ACTION"

    def test_thousands_separator_and_nbsp(self):
        outcome = classify_row({"name": "Parfum", "purchasePriceMad": "1\u00a0250,00", "sellingPriceDh": "1 990"})
        assert isinstance(outcome, Valid)
        assert outcome.record.purchase_price_mad_cents == 125000
        assert outcome.record.selling_price_cents == 199000

    @pytest.mark.parametrize(
        "row",
        [
            {"name": ""},
            {"name": "   "},
            {"name": "TOTAL ARRIVAGE", "purchasePriceEur": 100, "sellingPriceDh": 1000},
            {"name": "Produit", "purchasePriceEur": "PA", "sellingPriceDh": "PV"},
            {"name": "Empty line"},
        ],
    )
    def test_skipped_rows(self, row):
        assert isinstance(classify_row(row), Skipped)

    def test_missing_selling_price_is_an_error(self):
        outcome = classify_row({"name": "Serum", "purchasePriceEur": 5})
        assert isinstance(outcome, Errored)
        assert outcome.name == "Serum"
        assert "PV" in outcome.reason

    def test_missing_purchase_price_with_quantity_is_an_error(self):
        outcome = classify_row({"name": "Serum", "sellingPriceDh": 90, "quantityReceived": 3})
        assert isinstance(outcome, Errored)
        assert "PA" in outcome.reason

    def test_sold_above_received_is_an_error(self):
        outcome = classify_row({
            "name": "Serum", "purchasePriceEur": 5, "sellingPriceDh": 90,
            "quantityReceived": 2, "quantitySold": 3,
        })
        assert isinstance(outcome, Errored)

    def test_garbage_number_is_an_error(self):
        outcome = classify_row({"name": "Serum", "purchasePriceEur": "abc", "sellingPriceDh": 90})
        assert isinstance(outcome, Errored)

    def test_promo_above_selling_price_is_dropped(self):
        outcome = classify_row({"name": "Serum", "purchasePriceEur": 5, "sellingPriceDh": 90, "promoPriceDh": 120})
        assert isinstance(outcome, Valid)
        assert outcome.record.promo_price_cents is None

    def test_unknown_source_falls_back_to_other(self):
        outcome = classify_row({"name": "Serum", "purchasePriceEur": 5, "sellingPriceDh": 90, "purchaseSource": "Souk"})
        assert outcome.record.purchase_source == "OTHER"


class TestImportSheets:
    def test_creates_shipment_and_opening_snapshot(self, org):
        report = import_service.import_sheets(org.id, [
            {
                "sheetName": "ARRIVAGE MARS",
                "products": [
                    {"name": "Serum", "purchasePriceEur": 4, "sellingPriceDh": 90,
                     "quantityReceived": 5, "quantitySold": 1, "categoryName": "Soins"},
                    {"name": "TOTAL", "purchasePriceEur": 4, "sellingPriceDh": 90},
                    {"name": "Broken", "purchasePriceEur": 4},
                ],
            }
        ])

        assert report["totalSheets"] == 1
        assert report["arrivagesCreated"] == 1
        assert report["productsCreated"] == 1
        assert report["skipped"] == 1
        assert report["errored"] == 1
        assert report["errors"][0]["sheet"] == "ARRIVAGE MARS"
        assert report["errors"][0]["product"] == "Broken"

        arrivage = db.session.query(Arrivage).filter_by(org_id=org.id, reference="ARRIVAGE MARS").one()
        product = db.session.query(Product).filter_by(org_id=org.id, name="Serum").one()
        assert product.arrivage_id == arrivage.id
        assert (product.quantity_received, product.quantity_sold) == (5, 1)
        assert product.reorder_level == 5
        # 4.00 EUR at the default 10.85 rate
        assert product.purchase_price_mad_cents == 4340
        assert product.category.name == "Soins"
        assert db.session.query(StockMovement).count() == 0
        assert arrivage.product_count == 1
        assert arrivage.total_units == 5

    def test_missing_category_uses_default(self, org):
        import_service.import_sheets(org.id, [
            {"sheetName": "A1", "products": [{"name": "Mask", "purchasePriceMad": 20, "sellingPriceDh": 45}]}
        ])
        product = db.session.query(Product).filter_by(name="Mask").one()
        assert product.category.name == "Uncategorized"

    def test_existing_reference_is_reused(self, org):
        sheet = {"sheetName": "A1", "products": [{"name": "Mask", "purchasePriceMad": 20, "sellingPriceDh": 45}]}
        import_service.import_sheets(org.id, [sheet])
        report = import_service.import_sheets(org.id, [sheet])

        assert report["arrivagesCreated"] == 0
        assert db.session.query(Arrivage).filter_by(org_id=org.id).count() == 1
        assert db.session.query(Product).filter_by(org_id=org.id).count() == 2

    def test_long_sheet_name_is_reused_on_reimport(self, org):
        name = "Commande printemps " + "x" * 101
        assert len(name) == 120
        sheet = {"sheetName": name, "products": [{"name": "Mask", "purchasePriceMad": 20, "sellingPriceDh": 45}]}

        first = import_service.import_sheets(org.id, [sheet])
        second = import_service.import_sheets(org.id, [sheet])

        assert (first["arrivagesCreated"], first["productsCreated"]) == (1, 1)
        assert (second["arrivagesCreated"], second["productsCreated"], second["errored"]) == (0, 1, 0)
        arrivage = db.session.query(Arrivage).filter_by(org_id=org.id).one()
        assert arrivage.reference == name[:100]
        assert arrivage.product_count == 2

    def test_sheet_without_rows_is_skipped(self, org):
        report = import_service.import_sheets(org.id, [{"sheetName": "Empty", "products": []}])
        assert report["skipped"] == 1
        assert db.session.query(Arrivage).count() == 0

    def test_empty_request_rejected(self, org):
        with pytest.raises(ImportRequestError):
            import_service.import_sheets(org.id, [])

    def test_categories_are_scoped_to_the_organization(self, org, other_org):
        sheet = {"sheetName": "A1", "products": [
            {"name": "Mask", "purchasePriceMad": 20, "sellingPriceDh": 45, "categoryName": "Soins"}
        ]}
        import_service.import_sheets(org.id, [sheet])
        import_service.import_sheets(other_org.id, [sheet])

        assert db.session.query(Category).filter_by(name="Soins").count() == 2


class TestParseWorkbook:
    def test_header_row_is_detected_below_a_title(self):
        wb = Workbook()
        ws = wb.active
        ws.title = "ARRIVAGE 12"
        ws.append(["Arrivage du 12/03"])
        ws.append(["Produit", "Catégorie", "PA (€)", "PV", "Qté"])
        ws.append(["Serum", "Soins", 4.5, 90, 6])
        ws.append([None, None, None, None, None])
        buffer = BytesIO()
        wb.save(buffer)
        buffer.seek(0)

        sheets = import_service.parse_workbook(buffer)

        assert sheets == [{
            "sheetName": "ARRIVAGE 12",
            "products": [{
                "name": "Serum",
                "categoryName": "Soins",
                "purchasePriceEur": 4.5,
                "sellingPriceDh": 90,
                "quantityReceived": 6,
            }],
        }]
