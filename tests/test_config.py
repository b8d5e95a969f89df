import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import toml

from anjungan_print_relay.config.manager import DEFAULTS_FILE, ConfigManager, ServerConfig


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self._dir = tempfile.TemporaryDirectory()
        self.path = Path(self._dir.name) / 'config.toml'
        self.path.write_text(toml.dumps({'server': {'port': 3030, 'api_key': 'abc'}}))

    def tearDown(self):
        self._dir.cleanup()

    def test_dot_notation(self):
        config = ConfigManager(str(self.path))
        self.assertTrue(config.exists())
        self.assertEqual(config.get('server.port'), 3030)
        self.assertEqual(config.get('server.missing', 'x'), 'x')
        self.assertEqual(config.get('server.port.deeper', 'y'), 'y')

    def test_set_persists(self):
        config = ConfigManager(str(self.path))
        config.set('printing.thermal_width', '58mm')
        self.assertEqual(toml.load(self.path)['printing']['thermal_width'], '58mm')

    def test_update_sets_nested_keys_and_keeps_siblings(self):
        config = ConfigManager(str(self.path))
        config.update({'server.port': 4040, 'logging.dir': 'C:/relay/logs'})
        saved = toml.load(self.path)
        self.assertEqual(saved['server'], {'port': 4040, 'api_key': 'abc'})
        self.assertEqual(saved['logging']['dir'], 'C:/relay/logs')

    def test_bundled_defaults_parse(self):
        defaults = ServerConfig.from_manager(ConfigManager(str(DEFAULTS_FILE)))
        self.assertEqual(defaults.port, 2020)
        self.assertEqual(defaults.thermal_width, '80mm')


class TestServerConfig(unittest.TestCase):

    def setUp(self):
        self._dir = tempfile.TemporaryDirectory()
        self.path = Path(self._dir.name) / 'config.toml'
        self.path.write_text(toml.dumps({
            'server': {'port': 3030, 'api_key': 'from-file'},
            'timeouts': {'submit': 15},
        }))

    def tearDown(self):
        self._dir.cleanup()

    def test_file_values(self):
        with patch.dict(os.environ, {}, clear=True):
            config = ServerConfig.load(str(self.path))
        self.assertEqual(config.port, 3030)
        self.assertEqual(config.api_key, 'from-file')
        self.assertEqual(config.submit_timeout, 15.0)
        self.assertEqual(config.cors_origin, '*')

    def test_environment_wins(self):
        env = {'PORT': '4040', 'API_KEY': 'from-env', 'THERMAL_WIDTH': '58mm', 'LOG_LEVEL': 'debug'}
        with patch.dict(os.environ, env, clear=True):
            config = ServerConfig.load(str(self.path))
        self.assertEqual(config.port, 4040)
        self.assertEqual(config.api_key, 'from-env')
        self.assertEqual(config.thermal_width, '58mm')
        self.assertEqual(config.log_level, 'DEBUG')

    def test_blank_environment_is_ignored(self):
        with patch.dict(os.environ, {'PORT': ''}, clear=True):
            config = ServerConfig.load(str(self.path))
        self.assertEqual(config.port, 3030)


if __name__ == '__main__':
    unittest.main()
