#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""csrgen.config is a helper library that standardizes and collects the logic
in one place used by the csrgen CLI tools/scripts and the web app"""

import argparse
import logging
import os
from logging.config import dictConfig

import pyramid.paster as paster

from .request import DEFAULT_PROFILE, OrganizationProfile

LOG_LEVEL = {
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

DEFAULT_LOGGING_CONFIG = {
    "version": 1,
    "formatters": {
        "generic": {
            "format": "%(asctime)s %(levelname)-5.5s [%(name)s][%(threadName)s]"
            "%(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "level": "NOTSET",
            "formatter": "generic",
        },
    },
    "loggers": {
        "": {  # root logger
            "handlers": ["console"],
            "level": "INFO",
        },
        "csrgen": {
            "level": "DEBUG",
            "qualname": "csrgen",
        },
    },
}

DEFAULT_APP_SETTINGS = {
    "pyramid.debug_all": False,
    "pyramid.debug_authorization": False,
    "pyramid.debug_notfound": False,
    "pyramid.debug_routematch": False,
    "pyramid.default_locale_name": "en",
    "pyramid.prevent_http_cache": False,
    "pyramid.reload_all": False,
}

# argument/env variable -> (setting name, OrganizationProfile field)
PROFILE_VARIABLES = (
    ("country", "profile.country", "country"),
    ("state", "profile.state", "state"),
    ("locality", "profile.locality", "locality"),
    ("organization", "profile.organization", "organization"),
    ("org_unit", "profile.organizational_unit", "organizational_unit"),
    ("email", "profile.email", "email"),
)


def add_inifile_argument(parser, env=None):
    """Adds an argument to the parser for the config-file, defaults to
    CSRGEN_INI in the environment"""
    if env is None:
        env = os.environ
    default_ini = env.get("CSRGEN_INI")

    parser.add_argument(
        nargs="?",
        help="Path to a specific .ini-file to use as config",
        dest="inifile",
        default=default_ini,
        type=str,
    )


def add_verbosity_argument(parser):
    """Adds an argument for verbosity to a given parser, counting the amount of
    'v's and 'verbose' on the commandline"""
    parser.add_argument(
        "-v",
        "--verbose",
        help="Verbosity of root logger, increasing the more 'v's are added",
        action="count",
        default=0,
    )


def add_request_arguments(parser):
    """Adds the fqdn and sans arguments; left out they are prompted for"""
    parser.add_argument(
        "--fqdn",
        help="Fully qualified domain name, used as CN and first SAN",
        type=str,
    )
    parser.add_argument(
        "--sans",
        help="Comma separated list of additional names",
        type=str,
    )


def add_backend_argument(parser):
    """Adds an argument selecting the crypto backend"""
    parser.add_argument(
        "--backend",
        help="Crypto backend to generate key and request with",
        type=str,
    )


def add_output_dir_argument(parser):
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Directory to write the key and request to",
        dest="output_dir",
        type=str,
    )


def add_profile_arguments(parser):
    """Adds arguments overriding the organization in the subject"""
    group = parser.add_argument_group("subject")
    group.add_argument("--country", help="Country code (2 letters)", type=str)
    group.add_argument("--state", help="State or province", type=str)
    group.add_argument("--locality", help="Locality, e.g. city", type=str)
    group.add_argument("--organization", help="Organization name", type=str)
    group.add_argument(
        "--org-unit",
        help="Organizational unit",
        dest="org_unit",
        type=str,
    )
    group.add_argument("--email", help="Contact email address", type=str)


def _get_config_value(
    arguments: argparse.Namespace,
    variable,
    setting_name=None,
    settings=None,
    default=None,
    env=None,
):
    """Returns what value to use for a given config variable, prefer argument >
    env-variable > config-file, if a value cant be found and default is not
    None, default is returned"""
    result = None
    if setting_name is None:
        setting_name = variable
    if settings is not None:
        result = settings.get(setting_name, result)

    if env is None:
        env = os.environ
    env_var = "CSRGEN_" + variable.upper().replace("-", "_")
    result = env.get(env_var, result)

    arg_value = getattr(arguments, variable, result)
    result = arg_value if arg_value is not None else result

    if result is None:
        result = default

    return result


def get_backend_name(arguments=None, settings=None, env=None):
    """Returns the name of the backend to use, None means the default"""
    return _get_config_value(
        arguments,
        variable="backend",
        setting_name="csrgen.backend",
        settings=settings,
        env=env,
    )


def get_output_dir(arguments=None, settings=None, env=None):
    return _get_config_value(
        arguments,
        variable="output_dir",
        setting_name="csrgen.output_dir",
        settings=settings,
        default=os.curdir,
        env=env,
    )


def get_profile(arguments=None, settings=None, env=None):
    """Returns the OrganizationProfile to build subjects from, field by field
    falling back to DEFAULT_PROFILE"""
    values = {}
    for variable, setting_name, field in PROFILE_VARIABLES:
        values[field] = _get_config_value(
            arguments,
            variable=variable,
            setting_name=setting_name,
            settings=settings,
            default=getattr(DEFAULT_PROFILE, field),
            env=env,
        )
    return OrganizationProfile(**values)


def get_log_level(argument_level, logger=None, env=None):
    """Calculates the highest verbosity(here inverted) from the argument,
    environment and root, capping it to between logging.DEBUG(10)-logging.ERROR(40),
    returning the log level"""

    if env is None:
        env = os.environ
    env_level_name = env.get("CSRGEN_LOG_LEVEL", "ERROR").upper()
    env_level = LOG_LEVEL[env_level_name]

    if logger is None:
        logger = logging.getLogger()
    current_level = logger.level

    argument_verbosity = logging.ERROR - argument_level * 10  # level steps are 10
    verbosity = min(argument_verbosity, env_level, current_level)
    log_level = (
        verbosity if logging.DEBUG <= verbosity <= logging.ERROR else logging.ERROR
    )
    return log_level


def configure_log_level(arguments: argparse.Namespace, logger=None):
    """Sets the root loggers level to the highest verbosity from the argument,
    environment and config-file"""
    log_level = get_log_level(arguments.verbose)
    if logger is None:
        logger = logging.getLogger()
    logger.setLevel(log_level)


def setup_logging(config_path=None):
    """wrapper for pyramid.paster.setup_logging using file at config.path, if
    no config_path is passed on use dictionary DEFAULT_LOGGING_CONFIG"""
    if config_path:
        paster.setup_logging(config_path)
    else:
        dictConfig(DEFAULT_LOGGING_CONFIG)


def get_appsettings(config_path):
    """wrapper for pyramid.paster.get_appsettings, if a config_path is not
    given then return DEFAULT_APP_SETTINGS"""
    if config_path:
        return paster.get_appsettings(config_path)
    else:
        return dict(DEFAULT_APP_SETTINGS)
