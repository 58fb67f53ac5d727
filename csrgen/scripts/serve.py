#! /usr/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""Serve the csrgen web app with waitress, without a paste ini-file"""

import argparse
import logging

import waitress

from csrgen import config, main as get_app
from csrgen.config import (
    get_appsettings,
    setup_logging,
)

logger = logging.getLogger(__name__)


def cmdline(argv=None):
    parser = argparse.ArgumentParser()

    config.add_inifile_argument(parser)
    config.add_verbosity_argument(parser)

    parser.add_argument("--host", help="Interface to listen on",
                        default="127.0.0.1")
    parser.add_argument("--port", help="Port to listen on", type=int,
                        default=6543)

    args = parser.parse_args(argv)
    return args


def main(argv=None):
    args = cmdline(argv)
    config_path = args.inifile

    setup_logging(config_path)
    config.configure_log_level(args)

    settings = get_appsettings(config_path)
    app = get_app({}, **settings)
    logger.info("Serving on %s:%s", args.host, args.port)
    waitress.serve(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
