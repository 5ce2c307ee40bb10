"""test_config.py - settings file loading and run validation"""

import json
import os
import tempfile
import unittest
from unittest import mock

from autotrans.config import (
    API_KEY_ENV, AppSettings, ConfigError, load_settings, save_settings, validate_run,
)


class TestLoadSettings(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "_settings.json")
        env = mock.patch.dict(os.environ, {}, clear=False)
        env.start()
        os.environ.pop(API_KEY_ENV, None)
        self.addCleanup(env.stop)

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file_gives_defaults(self):
        settings = load_settings(self.path)
        self.assertEqual(settings, AppSettings())
        self.assertEqual(settings.batch_size, 10)
        self.assertEqual((settings.source_language, settings.target_language), ("ja", "vi"))

    def test_file_values_and_unknown_keys(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"target_language": "en", "batch_size": 5, "theme": "dark"}, f)
        settings = load_settings(self.path)
        self.assertEqual(settings.target_language, "en")
        self.assertEqual(settings.batch_size, 5)
        self.assertFalse(hasattr(settings, "theme"))

    def test_corrupt_file_falls_back(self):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertLogs("autotrans.config", level="WARNING"):
            settings = load_settings(self.path)
        self.assertEqual(settings, AppSettings())

    def test_environment_key_fills_empty_key(self):
        os.environ[API_KEY_ENV] = "sk-env"
        self.assertEqual(load_settings(self.path).api_key, "sk-env")

    def test_file_key_wins_over_environment(self):
        os.environ[API_KEY_ENV] = "sk-env"
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"api_key": "sk-file"}, f)
        self.assertEqual(load_settings(self.path).api_key, "sk-file")

    def test_save_then_load(self):
        settings = AppSettings(target_language="ko", translate_names=False)
        save_settings(settings, self.path)
        self.assertEqual(load_settings(self.path), settings)


class TestUpdate(unittest.TestCase):

    def test_none_values_ignored(self):
        settings = AppSettings()
        settings.update(target_language="en", batch_size=None)
        self.assertEqual(settings.target_language, "en")
        self.assertEqual(settings.batch_size, 10)

    def test_unknown_key_rejected(self):
        with self.assertRaises(ConfigError):
            AppSettings().update(colour="red")

    def test_to_config(self):
        config = AppSettings(batch_size=4, skip_translated=True).to_config()
        self.assertEqual(config.batch_size, 4)
        self.assertTrue(config.skip_translated)
        self.assertTrue(config.preserve_formatting)


class TestValidateRun(unittest.TestCase):

    def test_missing_key_refused(self):
        with self.assertRaises(ConfigError):
            validate_run(AppSettings(api_key="  "), ["Map001.json"])

    def test_missing_key_allowed_for_dry_run(self):
        validate_run(AppSettings(), ["Map001.json"], require_key=False)

    def test_no_files_refused(self):
        with self.assertRaises(ConfigError):
            validate_run(AppSettings(api_key="sk"), [])

    def test_bad_batch_size_refused(self):
        for size in (0, -1, "10"):
            with self.subTest(size=size):
                with self.assertRaises(ConfigError):
                    validate_run(AppSettings(api_key="sk", batch_size=size), ["a.json"])

    def test_unknown_language_refused(self):
        with self.assertRaises(ConfigError):
            validate_run(AppSettings(api_key="sk", target_language="klingon"), ["a.json"])

    def test_config_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigError, ValueError))


if __name__ == "__main__":
    unittest.main()
