"""Instrument configuration handling for boardscope.

Instruments are described in INI files, one section per instrument:

[owon_xdm]
# Basic settings
type = multimeter
driver = OwonMultimeter
host = 192.168.1.100
port = 9876
timeout_ms = 2000

# Command map, action key -> SCPI command
command.IDN = *IDN?
command.READ_DC = MEAS:SHOW?
command.CONFIGURE_VOLTAGE = CONF:VOLT:DC AUTO

Search order when loading:
1. ~/.boardscope/instruments.ini
2. package/instconfig/instruments/*.ini

Action keys are case-insensitive and stored upper case.

See Also
--------
boardscope.device : Drivers named by the `driver` key
boardscope.types.config : InstrumentConfig
"""

from __future__ import annotations

from configparser import ConfigParser
from pathlib import Path

from loguru import logger

from boardscope.types import INSTRUMENT_TYPES, InstrumentConfig, InstrumentEndpoint
from boardscope.util.defaults import DEFAULT_COMMAND_TIMEOUT_MS, DEFAULT_SCOPE_TIMEOUT_MS

COMMAND_PREFIX = "command."
REQUIRED_KEYS = ("type", "host", "port")


def user_instruments_file() -> Path:
    return Path.home() / ".boardscope" / "instruments.ini"


def package_config_dir() -> Path:
    import boardscope

    return Path(boardscope.__file__).parent / "instconfig" / "instruments"


def _default_timeout(instrument_type: str) -> int:
    if instrument_type == "oscilloscope":
        return DEFAULT_SCOPE_TIMEOUT_MS
    return DEFAULT_COMMAND_TIMEOUT_MS


def _driver_name(config: ConfigParser, section: str) -> str:
    from boardscope.device import DEFAULT_DRIVERS

    return config[section].get(
        "driver", DEFAULT_DRIVERS.get(config[section].get("type", ""), "")
    )


def validate_instrument_config(config: ConfigParser, section: str) -> tuple[bool, str]:
    """Validate an instrument configuration section.

    Parameters
    ----------
    config : ConfigParser
        ConfigParser instance containing the configuration
    section : str
        Name of the section to validate

    Returns
    -------
    tuple[bool, str]
        (is_valid, error_message)
    """
    missing = [key for key in REQUIRED_KEYS if key not in config[section]]
    if missing:
        return False, f"Missing required fields: {', '.join(missing)}"

    inst_type = config[section]["type"]
    if inst_type not in INSTRUMENT_TYPES:
        return False, f"Invalid instrument type: {inst_type}"

    try:
        port = config[section].getint("port")
    except ValueError:
        return False, f"Invalid port: {config[section]['port']}"
    if not 0 < port < 65536:
        return False, f"Port out of range: {port}"

    if "timeout_ms" in config[section]:
        try:
            timeout_ms = config[section].getint("timeout_ms")
        except ValueError:
            return False, f"Invalid timeout_ms: {config[section]['timeout_ms']}"
        if timeout_ms <= 0:
            return False, f"timeout_ms must be positive, got {timeout_ms}"

    from boardscope.device import get_valid_driver_types

    driver = _driver_name(config, section)
    if driver not in get_valid_driver_types():
        return False, f"Invalid driver: {driver}"

    return True, ""


def _create_instrument_config(config: ConfigParser, section: str) -> InstrumentConfig:
    valid, msg = validate_instrument_config(config, section)
    if not valid:
        raise ValueError(f"Invalid configuration for instrument '{section}': {msg}")
    values = config[section]
    inst_type = values["type"]
    command_map = {
        key[len(COMMAND_PREFIX) :].upper(): cmd
        for key, cmd in values.items()
        if key.startswith(COMMAND_PREFIX)
    }
    return InstrumentConfig(
        name=section,
        type=inst_type,
        driver=_driver_name(config, section),
        endpoint=InstrumentEndpoint(
            values["host"],
            values.getint("port"),
            values.getint("timeout_ms", _default_timeout(inst_type)),
        ),
        command_map=command_map,
    )


def _find_section(config: ConfigParser, name: str) -> str | None:
    for section in config.sections():
        if section.lower() == name.lower():
            return section
    return None


def load_instrument_config(name: str) -> InstrumentConfig:
    """Load an instrument configuration from INI files.

    User configuration (~/.boardscope/instruments.ini) takes precedence over
    package defaults.

    Parameters
    ----------
    name : str
        Section name of the instrument, case-insensitive

    Returns
    -------
    InstrumentConfig
        Loaded and validated configuration

    Raises
    ------
    ValueError
        If the instrument isn't found or its section is invalid
    """
    user_file = user_instruments_file()
    if user_file.exists():
        config = ConfigParser()
        config.read(user_file)
        section = _find_section(config, name)
        if section is not None:
            logger.debug(f"Loading instrument {section} from {user_file}")
            return _create_instrument_config(config, section)

    package_dir = package_config_dir()
    for file in sorted(package_dir.glob("*.ini")):
        config = ConfigParser()
        config.read(file)
        section = _find_section(config, name)
        if section is not None:
            logger.debug(f"Loading instrument {section} from {file}")
            return _create_instrument_config(config, section)

    raise ValueError(
        f"Instrument '{name}' not found in:\n"
        f"- User config: {user_file}\n"
        f"- Package config: {package_dir}"
    )


def list_available_instruments() -> dict[str, str]:
    """List all instrument configurations.

    Returns
    -------
    dict[str, str]
        Instrument names mapped to their source ('user' or 'package')

    Notes
    -----
    User configurations override package defaults of the same name. Sections
    are not validated.

    Examples
    --------
    >>> list_available_instruments()
    {'Owon': 'package', 'Rigol': 'package', 'bench_dmm': 'user'}
    """
    instruments = {}

    package_dir = package_config_dir()
    if package_dir.exists():
        for file in sorted(package_dir.glob("*.ini")):
            config = ConfigParser()
            config.read(file)
            for section in config.sections():
                instruments[section] = "package"

    user_file = user_instruments_file()
    if user_file.exists():
        config = ConfigParser()
        config.read(user_file)
        for section in config.sections():
            existing = _find_section_name(instruments, section)
            if existing is not None:
                del instruments[existing]
            instruments[section] = "user"

    return instruments


def _find_section_name(instruments: dict[str, str], name: str) -> str | None:
    for section in instruments:
        if section.lower() == name.lower():
            return section
    return None


def _config_to_section(config: InstrumentConfig) -> dict[str, str]:
    section = {
        "type": config.type,
        "driver": config.driver,
        "host": config.endpoint.host,
        "port": str(config.endpoint.port),
        "timeout_ms": str(config.endpoint.timeout_ms),
    }
    for key, cmd in config.command_map.items():
        section[f"{COMMAND_PREFIX}{key}"] = cmd
    return section


def save_instrument_config(config: InstrumentConfig, file_path: Path | None = None) -> None:
    """Write (or replace) one instrument section.

    Other sections in the file are preserved. Defaults to the user file.
    """
    file_path = Path(file_path) if file_path is not None else user_instruments_file()
    parser = ConfigParser()
    if file_path.exists():
        parser.read(file_path)
    existing = _find_section(parser, config.name)
    if existing is not None:
        parser.remove_section(existing)
    parser[config.name] = _config_to_section(config)

    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w") as f:
        parser.write(f)
    logger.info(f"Saved instrument {config.name} to {file_path}")


def create_default_instruments_file(file_path: Path | None = None) -> Path:
    """Create a user instruments.ini holding the packaged instruments.

    Sections already present in the file are kept as they are.
    """
    file_path = Path(file_path) if file_path is not None else user_instruments_file()
    logger.debug(f"Creating default instruments file at {file_path}")

    config = ConfigParser()
    for file in sorted(package_config_dir().glob("*.ini")):
        config.read(file)

    if file_path.exists():
        existing_config = ConfigParser()
        existing_config.read(file_path)
        logger.debug(f"Existing sections: {existing_config.sections()}")
        for section in existing_config.sections():
            packaged = _find_section(config, section)
            if packaged is not None:
                config.remove_section(packaged)
            config[section] = dict(existing_config[section])
            logger.debug(f"Preserving existing section: {section}")

    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w") as f:
        f.write(
            "# boardscope instrument configurations\n"
            "# Required fields: type (multimeter | oscilloscope), host, port\n"
            "# Optional: driver, timeout_ms, command.<ACTION> = <SCPI command>\n\n"
        )
        config.write(f)
    return file_path


def create_instrument(name_or_config: str | InstrumentConfig):
    """Instantiate the driver for a configured instrument."""
    from boardscope.device import get_valid_driver_types

    if isinstance(name_or_config, str):
        config = load_instrument_config(name_or_config)
    else:
        config = name_or_config
    driver = get_valid_driver_types()[config.driver]
    return driver.from_config(config)
