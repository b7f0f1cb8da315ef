import tempfile
import unittest

from cuemaster import create_app
from cuemaster.extensions import db
from cuemaster.models import DurationRange, HallSettings
from cuemaster.services import players_service, settings_service
from cuemaster.services.hall_data import hall_data, save_global_catalog
from cuemaster.services.settings_service import SettingsError
from cuemaster.models import CatalogItem, StaffUser


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.tmp = tempfile.TemporaryDirectory()
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "CUEMASTER_CACHE_DIR": cls.tmp.name,
            "SYNC_DEBOUNCE_SECONDS": 0,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()
        cls.tmp.cleanup()

    def setUp(self):
        self.hall = hall_data("HALL-S")
        self.hall.save_settings(HallSettings(price_per_game=1000, table_count=3))
        self.hall.save_players([])

    def test_apply_update_replaces_fields(self):
        updated = settings_service.apply_update(
            self.hall.load_settings(),
            {"pricePerGame": 1500, "tableCount": 5, "discountTiers": {"4": 500, "8": 1500}},
        )
        self.assertEqual(updated.price_per_game, 1500)
        self.assertEqual(updated.table_count, 5)
        self.assertEqual(dict(updated.discount_tiers), {4: 500, 8: 1500})

    def test_unknown_key_rejected(self):
        with self.assertRaises(SettingsError):
            settings_service.apply_update(self.hall.load_settings(), {"pricePerGames": 1500})

    def test_invalid_table_count_rejected(self):
        with self.assertRaises(SettingsError):
            settings_service.apply_update(self.hall.load_settings(), {"tableCount": 0})

    def test_update_persists_round_trip(self):
        settings_service.update_settings(self.hall, {
            "tableGameDurations": {"2": {"min": 12, "max": 18}},
            "marketItems": [{"name": "Tea", "price": 250}],
        })
        reloaded = self.hall.load_settings()
        self.assertEqual(reloaded.duration_for(2), DurationRange(12, 18))
        self.assertEqual(reloaded.catalog_price("Tea"), 250)

    def test_zero_price_survives_reload(self):
        settings_service.update_settings(self.hall, {"pricePerGame": 0})
        self.assertEqual(self.hall.load_settings().price_per_game, 0)

    def test_missing_price_uses_default(self):
        settings = HallSettings.from_dict({"tableCount": 2}, default_price=1250)
        self.assertEqual(settings.price_per_game, 1250)

    def test_duplicate_catalog_item_rejected(self):
        with self.assertRaises(SettingsError):
            settings_service.apply_update(
                self.hall.load_settings(),
                {"marketItems": [{"name": "Tea", "price": 250}, {"name": "Tea", "price": 300}]},
            )

    def test_set_table_range_clamps(self):
        result = settings_service.set_table_range(self.hall, 1, minimum=0)
        self.assertEqual(result.min, 1)

    def test_change_table_count_never_below_one(self):
        self.assertEqual(settings_service.change_table_count(self.hall, 2).table_count, 5)
        self.assertEqual(settings_service.change_table_count(self.hall, -10).table_count, 1)

    def test_hall_catalog_overrides_global(self):
        save_global_catalog([CatalogItem(id="g1", name="Tea", price=200), CatalogItem(id="g2", name="Water", price=100)])
        self.hall.save_settings(HallSettings(market_items=(CatalogItem(id="h1", name="Tea", price=300),)))
        catalog = self.hall.market_catalog()
        self.assertEqual(catalog, {"Tea": 300, "Water": 100})

    def test_players_add_and_remove(self):
        manager = StaffUser(id="m", username="m", role="MANAGER")
        staff = StaffUser(id="s", username="s", role="STAFF")
        players_service.add_player(self.hall, "Ali")
        players_service.add_player(self.hall, "bara")
        self.assertEqual(players_service.list_players(self.hall), ["Ali", "bara"])
        self.assertEqual(players_service.list_players(self.hall, "BAR"), ["bara"])

        self.assertFalse(players_service.remove_player(self.hall, "Ali", staff))
        self.assertTrue(players_service.remove_player(self.hall, "Ali", manager))
        self.assertEqual(players_service.list_players(self.hall), ["bara"])


if __name__ == "__main__":
    unittest.main()
