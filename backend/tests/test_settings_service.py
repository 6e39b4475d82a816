import unittest
from decimal import Decimal

from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import Organization, Setting
from stockroom.services import settings_service
from stockroom.services.settings_service import DEFAULT_SETTINGS, SettingsValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "TESTING": True,
            "LOG_LEVEL": "WARNING",
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(Setting).delete()
        db.session.query(Organization).delete()
        db.session.commit()

        self.org = Organization(name="Test Org", code="TEST")
        self.other = Organization(name="Other Org", code="OTHER")
        db.session.add_all([self.org, self.other])
        db.session.commit()

    def test_defaults_without_rows(self):
        self.assertEqual(settings_service.get_settings(self.org.id), DEFAULT_SETTINGS)
        self.assertEqual(settings_service.packaging_cost_cents(self.org.id), 800)
        self.assertEqual(settings_service.exchange_rate(self.org.id), Decimal("10.85"))

    def test_packaging_default_follows_config(self):
        previous = self.app.config["DEFAULT_PACKAGING_COST_CENTS"]
        self.app.config["DEFAULT_PACKAGING_COST_CENTS"] = 500
        try:
            self.assertEqual(settings_service.packaging_cost_cents(self.org.id), 500)
            self.assertEqual(settings_service.get_settings(self.org.id)["packagingCostTotal"], "5.00")

            settings_service.seed_defaults(self.org.id)
            row = db.session.query(Setting).filter_by(org_id=self.org.id, key="packagingCostTotal").one()
            self.assertEqual(row.value, "5.00")
        finally:
            self.app.config["DEFAULT_PACKAGING_COST_CENTS"] = previous

    def test_seed_is_idempotent(self):
        self.assertEqual(settings_service.seed_defaults(self.org.id), len(DEFAULT_SETTINGS))
        self.assertEqual(settings_service.seed_defaults(self.org.id), 0)

    def test_update_normalizes_and_scopes(self):
        values = settings_service.update_settings(
            self.org.id, {"packagingCostTotal": "9.5", "exchangeRateEurToMad": 11}
        )
        self.assertEqual(values["packagingCostTotal"], "9.50")
        self.assertEqual(values["exchangeRateEurToMad"], "11.0000")
        self.assertEqual(settings_service.packaging_cost_cents(self.org.id), 950)
        self.assertEqual(settings_service.get_settings(self.other.id), DEFAULT_SETTINGS)

    def test_invalid_value_writes_nothing(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings(
                self.org.id, {"packagingCostTotal": "12", "adsCostMonthly": "lots"}
            )
        self.assertEqual(db.session.query(Setting).count(), 0)

    def test_rejects_unknown_key_and_zero_rate(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings(self.org.id, {"colour": "blue"})
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings(self.org.id, {"exchangeRateEurToMad": "0"})
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings(self.org.id, {"adsCostMonthly": "-1"})


if __name__ == "__main__":
    unittest.main()
