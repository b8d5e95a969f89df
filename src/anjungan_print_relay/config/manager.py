from dataclasses import dataclass
from pathlib import Path
import toml
import os

CONFIG_DIR = Path.home() / '.anjungan_print_relay'
DEFAULTS_FILE = Path(__file__).with_name('defaults.toml')


def default_config_path() -> Path:
    """Active config file path, matching ConfigManager lookup order."""
    home_cfg = CONFIG_DIR / 'config.toml'
    if home_cfg.exists():
        return home_cfg
    if Path('config.toml').exists():
        return Path('config.toml')
    return home_cfg


class ConfigManager:
    """Manages configuration loading and access."""

    def __init__(self, config_file: str = None):
        """
        Initialize ConfigManager.

        Args:
            config_file: Path to config file. If None, uses default locations.
        """
        if config_file is None:
            # User home directory first, then current directory
            if (CONFIG_DIR / 'config.toml').exists():
                config_file = str(CONFIG_DIR / 'config.toml')
            elif Path('config.toml').exists():
                config_file = 'config.toml'
            else:
                config_file = None

        self.config_file = Path(config_file) if config_file else None
        self.config = {}
        if self.config_file:
            self.load_config()

    def exists(self):
        """Check if config file exists."""
        return bool(self.config_file and self.config_file.exists())

    def load_config(self):
        """Load configuration from file."""
        if not self.config_file or not self.config_file.exists():
            return

        self.config = toml.load(self.config_file)

    def save_config(self):
        """Save configuration to file."""
        if not self.config_file:
            raise ValueError("No config file specified")

        self.config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, 'w') as f:
            toml.dump(self.config, f)

    def get(self, key: str, default=None):
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'server.port')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value, save: bool = True):
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'server.api_key')
            value: Value to set
            save: Write the file straight away
        """
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        if save:
            self.save_config()

    def update(self, updates: dict):
        """Set several dot-notation keys, then save once."""
        for key, value in updates.items():
            self.set(key, value, save=False)
        self.save_config()


def _env(name: str, fallback):
    value = os.getenv(name)
    if value is None or value == '':
        return fallback
    return value


@dataclass
class ServerConfig:
    """
    Resolved runtime settings. Environment variables win over the config file,
    the config file wins over the built-in defaults.
    """
    host: str = '0.0.0.0'
    port: int = 2020
    cors_origin: str = '*'
    api_key: str = ''
    thermal_width: str = '80mm'
    log_dir: str = 'logs'
    log_level: str = 'INFO'
    log_max_files: int = 14
    driver: str = ''                # '' = pick by platform, or windows | cups
    sumatra_path: str = 'SumatraPDF.exe'
    temp_dir: str = ''
    submit_timeout: float = 60.0
    render_timeout: float = 60.0
    query_timeout: float = 30.0

    @classmethod
    def from_manager(cls, config: ConfigManager) -> 'ServerConfig':
        d = cls()
        return cls(
            host=str(_env('HOST', config.get('server.host', d.host))),
            port=int(_env('PORT', config.get('server.port', d.port))),
            cors_origin=str(_env('CORS_ORIGIN', config.get('server.cors_origin', d.cors_origin))),
            api_key=str(_env('API_KEY', config.get('server.api_key', d.api_key))),
            thermal_width=str(_env('THERMAL_WIDTH', config.get('printing.thermal_width', d.thermal_width))),
            log_dir=str(_env('LOG_DIR', config.get('logging.dir', d.log_dir))),
            log_level=str(_env('LOG_LEVEL', config.get('logging.level', d.log_level))).upper(),
            log_max_files=int(_env('LOG_MAX_FILES', config.get('logging.max_files', d.log_max_files))),
            driver=str(_env('PRINT_DRIVER', config.get('printing.driver', d.driver))).lower(),
            sumatra_path=str(_env('SUMATRA_PATH', config.get('printing.sumatra_path', d.sumatra_path))),
            temp_dir=str(_env('TEMP_DIR', config.get('printing.temp_dir', d.temp_dir))),
            submit_timeout=float(_env('SUBMIT_TIMEOUT', config.get('timeouts.submit', d.submit_timeout))),
            render_timeout=float(_env('RENDER_TIMEOUT', config.get('timeouts.render', d.render_timeout))),
            query_timeout=float(_env('QUERY_TIMEOUT', config.get('timeouts.query', d.query_timeout))),
        )

    @classmethod
    def load(cls, config_file: str = None) -> 'ServerConfig':
        return cls.from_manager(ConfigManager(config_file))
