import os
import sys
import unittest
import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from settings_schema import SettingsSchema, validate_settings


class YamlConfigTest(unittest.TestCase):
    def setUp(self) -> None:
        self.path = "test_progress_settings.yaml"
        if os.path.exists(self.path):
            os.remove(self.path)

    def tearDown(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)

    def test_defaults_when_missing(self) -> None:
        settings = YamlConfig(self.path).settings()
        self.assertEqual(settings, SettingsSchema())
        self.assertEqual(settings.round_digits, 2)
        self.assertEqual(settings.fill, "sparse")
        self.assertEqual(settings.range_policy, "fallback")
        self.assertEqual(settings.streak_limit, 30)

    def test_save_and_load(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({"round_digits": 0, "matcher": "scored", "match_threshold": 0.75})
        self.assertEqual(cfg.load()["matcher"], "scored")
        settings = cfg.settings()
        self.assertEqual(settings.round_digits, 0)
        self.assertEqual(settings.match_threshold, 0.75)

    def test_invalid_values_rejected(self) -> None:
        cfg = YamlConfig(self.path)
        with self.assertRaises(ValueError):
            cfg.save({"fill": "spline"})
        self.assertFalse(os.path.exists(self.path))
        with self.assertRaises(ValueError):
            validate_settings({"round_digits": 9})

    def test_non_mapping_file(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump([1, 2], f)
        with self.assertRaises(ValueError):
            YamlConfig(self.path).load()

    def test_env_path(self) -> None:
        os.environ[YamlConfig.ENV_PATH] = self.path
        try:
            self.assertEqual(YamlConfig().path, self.path)
        finally:
            os.environ.pop(YamlConfig.ENV_PATH, None)


if __name__ == "__main__":
    unittest.main()
