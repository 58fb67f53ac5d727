#! /usr/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""Generate a private key and a certificate signing request.

Asks for the FQDN and the extra names unless they are given as arguments,
then writes <host>_<year>.key and <host>_<year>.csr. The key is written
unencrypted; keep it safe."""

import argparse
import logging
import os
import sys

from csrgen import config
from csrgen.certlib import (
    CryptoError,
    artifact_names,
    get_backend,
    write_out_files,
)
from csrgen.config import (
    get_appsettings,
    setup_logging,
)
from csrgen.request import (
    RequestBuilder,
    ValidationError,
    numbered_sans,
)

logger = logging.getLogger(__name__)

FQDN_PROMPT = (
    "Enter the fully qualified domain name (FQDN) for the CN "
    "(e.g., server.bc.edu): "
)
SANS_PROMPT = (
    "Example: www.server.bc.edu,api.server.bc.edu (or leave blank for none): "
)
RULER = "-" * 57


def cmdline(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])

    config.add_inifile_argument(parser)
    config.add_verbosity_argument(parser)
    config.add_request_arguments(parser)
    config.add_backend_argument(parser)
    config.add_output_dir_argument(parser)
    config.add_profile_arguments(parser)

    args = parser.parse_args(argv)
    return args


def prompt_input(args, ask=input):
    """Fill in whatever was not given on the commandline"""
    fqdn, sans = args.fqdn, args.sans
    if fqdn is None:
        print(RULER)
        fqdn = ask(FQDN_PROMPT)
    if sans is None:
        print()
        print("Enter Subject Alternative Names (SANs), separated by commas.")
        sans = ask(SANS_PROMPT)
    return fqdn, sans


def error_out(message):
    """Just log a message, and exit"""
    logger.error(message)
    sys.exit(1)


def main(argv=None, ask=input):
    args = cmdline(argv)
    config_path = args.inifile

    setup_logging(config_path)
    config.configure_log_level(args)

    settings = get_appsettings(config_path)
    profile = config.get_profile(args, settings)
    output_dir = config.get_output_dir(args, settings)
    try:
        backend = get_backend(config.get_backend_name(args, settings))
    except ValueError as error:
        error_out(str(error))

    fqdn, sans = prompt_input(args, ask)
    try:
        descriptor = RequestBuilder(profile).build_from_input(fqdn, sans)
    except ValidationError as error:
        error_out("Error: {}".format(error))

    key_path, csr_path = (
        os.path.join(output_dir, name)
        for name in artifact_names(descriptor.common_name)
    )
    # Check before spending time on a key we cannot write
    for f in key_path, csr_path:
        if os.path.exists(f):
            error_out("File already exists: {}. Refusing to corrupt.".format(f))
    os.makedirs(output_dir, exist_ok=True)

    print()
    print("Generating Private Key ({}) and CSR ({})...".format(key_path, csr_path))
    print("CN: {}".format(descriptor.common_name))
    print("SANs:")
    print("\n".join(numbered_sans(descriptor)))
    print(RULER)

    try:
        signed = backend.generate(descriptor)
        write_out_files(signed, key_path, csr_path)
    except (CryptoError, FileExistsError) as error:
        error_out("CSR generation failed: {}".format(error))

    print()
    print("Process complete. CSR file ready for submission.")


if __name__ == "__main__":
    main()
