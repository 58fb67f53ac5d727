#! /usr/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""Key generation and CSR signing backends, and the files they end up in.

Every backend takes the same CsrRequestDescriptor and must produce the same
request: subject in descriptor order, one non-critical subjectAltName with
the SANs as DNS names in order, SHA-256 with RSA."""

import datetime
import logging
import os
import shutil
import subprocess
import tempfile
from typing import NamedTuple

import OpenSSL.crypto as _crypto
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from .request import DEFAULT_PROFILE, RequestBuilder, render_openssl_config

logger = logging.getLogger(__name__)

PUBLIC_EXPONENT = 65537

HASH = {"SHA256withRSA": hashes.SHA256}

NAME_OIDS = {
    "C": NameOID.COUNTRY_NAME,
    "ST": NameOID.STATE_OR_PROVINCE_NAME,
    "L": NameOID.LOCALITY_NAME,
    "O": NameOID.ORGANIZATION_NAME,
    "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "emailAddress": NameOID.EMAIL_ADDRESS,
    "CN": NameOID.COMMON_NAME,
}


class CryptoError(Exception):
    """A backend failed; the message is the backend's"""


class KeyGenFailed(CryptoError):
    pass


class SignFailed(CryptoError):
    pass


class SignedRequest(NamedTuple):
    key_pem: str
    csr_pem: str


def x509_name(subject):
    return x509.Name(
        [x509.NameAttribute(NAME_OIDS[k], v) for k, v in subject.components()]
    )


def create_req(descriptor, key):
    """Build and sign the request with cryptography's builder"""
    try:
        algorithm = HASH[descriptor.signature_algorithm]
    except KeyError:
        raise SignFailed(
            "Unsupported signature algorithm {}".format(
                descriptor.signature_algorithm
            )
        )
    try:
        san = x509.SubjectAlternativeName(
            [x509.DNSName(name) for name in descriptor.sans]
        )
        builder = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(x509_name(descriptor.subject))
            .add_extension(san, critical=False)
        )
        req = builder.sign(key, algorithm())
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise SignFailed(str(err)) from err
    return req.public_bytes(serialization.Encoding.PEM).decode("utf8")


class Backend(object):
    """Adapter between a CsrRequestDescriptor and a crypto library"""

    name = None

    def generate_key_pair(self, bits):
        raise NotImplementedError

    def sign_request(self, descriptor, key) -> SignedRequest:
        raise NotImplementedError

    def generate(self, descriptor) -> SignedRequest:
        key = self.generate_key_pair(descriptor.key_bits)
        return self.sign_request(descriptor, key)


class CryptographyBackend(Backend):
    name = "cryptography"

    def generate_key_pair(self, bits):
        try:
            return rsa.generate_private_key(
                public_exponent=PUBLIC_EXPONENT, key_size=bits
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            raise KeyGenFailed(str(err)) from err

    def sign_request(self, descriptor, key):
        csr_pem = create_req(descriptor, key)
        key_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf8")
        return SignedRequest(key_pem=key_pem, csr_pem=csr_pem)


class PyOpenSSLBackend(Backend):
    """Keys from pyOpenSSL's PKey, request from the cryptography builder"""

    name = "pyopenssl"

    def generate_key_pair(self, bits):
        key = _crypto.PKey()
        try:
            key.generate_key(_crypto.TYPE_RSA, bits)
        except (_crypto.Error, ValueError, TypeError) as err:
            raise KeyGenFailed(str(err)) from err
        return key

    def sign_request(self, descriptor, key):
        csr_pem = create_req(descriptor, key.to_cryptography_key())
        key_pem = _crypto.dump_privatekey(_crypto.FILETYPE_PEM, key)
        return SignedRequest(key_pem=key_pem.decode("utf8"), csr_pem=csr_pem)


def call_openssl(*args, cwd=None):
    return subprocess.run(
        ("openssl",) + args,
        cwd=cwd,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    )


def _stderr(result):
    return result.stderr.decode("utf8", "replace").strip()


def _read(directory, name):
    with open(os.path.join(directory, name), "rt", encoding="utf8") as f:
        return f.read()


def _write(directory, name, data):
    with open(os.path.join(directory, name), "wt", encoding="utf8") as f:
        f.write(data)


class OpenSSLCommandBackend(Backend):
    """Runs the openssl executable in a scratch directory.

    The key is handled as PEM text; the config, key and request files only
    exist for the duration of one call."""

    name = "openssl"
    KEY_FILE = "request.key"
    CSR_FILE = "request.csr"
    CNF_FILE = "request.cnf"

    def assert_openssl_available(self, error=KeyGenFailed):
        if shutil.which("openssl") is None:
            logger.error("Cannot find an openssl executable!")
            raise error("Cannot find an openssl executable")

    def generate_key_pair(self, bits):
        self.assert_openssl_available()
        with tempfile.TemporaryDirectory() as tmpdir:
            result = call_openssl(
                "genrsa", "-out", self.KEY_FILE, str(bits), cwd=tmpdir
            )
            if result.returncode != 0:
                logger.error("Failed to generate private key!")
                raise KeyGenFailed(_stderr(result) or "openssl genrsa failed")
            return _read(tmpdir, self.KEY_FILE)

    def sign_request(self, descriptor, key):
        self.assert_openssl_available(error=SignFailed)
        try:
            cnf = render_openssl_config(descriptor)
        except ValueError as err:
            raise SignFailed(str(err)) from err
        with tempfile.TemporaryDirectory() as tmpdir:
            _write(tmpdir, self.KEY_FILE, key)
            _write(tmpdir, self.CNF_FILE, cnf)
            result = call_openssl(
                "req",
                "-new",
                "-utf8",
                "-sha256",
                "-config", self.CNF_FILE,
                "-key", self.KEY_FILE,
                "-out", self.CSR_FILE,
                cwd=tmpdir,
            )
            if result.returncode != 0:
                logger.error("Failed to create certificate signing request!")
                raise SignFailed(_stderr(result) or "openssl req failed")
            csr_pem = _read(tmpdir, self.CSR_FILE)
        return SignedRequest(key_pem=key, csr_pem=csr_pem)


BACKENDS = {
    backend.name: backend
    for backend in (CryptographyBackend, PyOpenSSLBackend, OpenSSLCommandBackend)
}
DEFAULT_BACKEND = CryptographyBackend.name


def get_backend(name=None):
    name = name or DEFAULT_BACKEND
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(
            "Unknown backend {!r}, choose one of {}".format(
                name, ", ".join(sorted(BACKENDS))
            )
        )


def generate_csr(fqdn_raw, sans_raw, backend=None, profile=DEFAULT_PROFILE):
    """Normalize, build and sign. Returns (descriptor, SignedRequest)"""
    descriptor = RequestBuilder(profile).build_from_input(fqdn_raw, sans_raw)
    if backend is None:
        backend = get_backend()
    logger.info(
        "Generating %s bit key and CSR for %s with %s",
        descriptor.key_bits,
        descriptor.common_name,
        backend.name,
    )
    logger.debug("SANs: %s", ", ".join(descriptor.sans))
    signed = backend.generate(descriptor)
    return descriptor, signed


def artifact_basename(fqdn, year=None):
    """server.example.edu -> server_2026"""
    if year is None:
        year = datetime.date.today().year
    label = fqdn.split(".", 1)[0]
    return "{}_{}".format(label, year)


def artifact_names(fqdn, year=None):
    basename = artifact_basename(fqdn, year)
    return basename + ".key", basename + ".csr"


def write_out_files(signed, key_path, csr_path):
    """Write key and request, refusing to touch existing files"""
    for path in key_path, csr_path:
        if os.path.exists(path):
            raise FileExistsError(
                "File already exists: {}. Refusing to corrupt.".format(path)
            )

    fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(signed.key_pem)
    with open(csr_path, "x") as f:
        f.write(signed.csr_pem)
    logger.info("Wrote key to %s and request to %s", key_path, csr_path)
