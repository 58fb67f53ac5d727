#! /usr/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""csrgen.request turns raw operator input into a backend-neutral
description of a certificate signing request.

Nothing in here touches keys, encodings or files; the backends in
csrgen.certlib take a CsrRequestDescriptor and do the cryptography."""

from typing import NamedTuple, Optional, Sequence, Tuple

KEY_BITS = 2048
SIGNATURE_ALGORITHM = "SHA256withRSA"
SAN_SEPARATOR = ","

# Subject attribs, in order. Some CA tooling re-parses the DN and cares.
SUBJECT_ORDER = ("C", "ST", "L", "O", "OU", "emailAddress", "CN")


class ValidationError(ValueError):
    """Input that cannot be turned into a request"""


class MissingFqdn(ValidationError):
    def __init__(self, message="Please enter the FQDN."):
        super().__init__(message)


class OrganizationProfile(NamedTuple):
    """The fixed part of every subject we request"""

    country: str
    state: str
    locality: str
    organization: str
    organizational_unit: str
    email: str


DEFAULT_PROFILE = OrganizationProfile(
    country="US",
    state="MA",
    locality="Boston",
    organization="Trustees of Boston College",
    organizational_unit="BC",
    email="itsstaff.ops@bc.edu",
)


class SubjectIdentity(NamedTuple):
    country: str
    state: str
    locality: str
    organization: str
    organizational_unit: str
    email: str
    common_name: str

    @classmethod
    def from_profile(cls, profile, common_name):
        return cls(*profile, common_name=common_name)

    def components(self) -> Tuple[Tuple[str, str], ...]:
        """(short name, value) pairs in DN order"""
        return tuple(zip(SUBJECT_ORDER, self))


class CsrRequestDescriptor(NamedTuple):
    subject: SubjectIdentity
    sans: Tuple[str, ...]
    signature_algorithm: str = SIGNATURE_ALGORITHM
    key_bits: int = KEY_BITS

    @property
    def common_name(self):
        return self.subject.common_name


class NormalizedInput(NamedTuple):
    fqdn: str
    sans: Tuple[str, ...]


def split_sans(sans_raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma separated list, dropping blanks but keeping order and
    duplicates."""
    if not sans_raw:
        return ()
    tokens = (token.strip() for token in sans_raw.split(SAN_SEPARATOR))
    return tuple(token for token in tokens if token)


def normalize(fqdn_raw: Optional[str], sans_raw: Optional[str]) -> NormalizedInput:
    """Trim and check the two input fields.

    Only emptiness of the FQDN is checked. Host names are not validated,
    lowercased or de-duplicated; CAs have accepted whatever operators typed
    so far and we keep it that way."""
    fqdn = (fqdn_raw or "").strip()
    if not fqdn:
        raise MissingFqdn()
    return NormalizedInput(fqdn, split_sans(sans_raw))


class RequestBuilder(object):
    """Pairs an OrganizationProfile with per-request host names"""

    def __init__(self, profile: OrganizationProfile = DEFAULT_PROFILE):
        self.profile = profile

    def build(self, fqdn: str, extra_sans: Sequence[str] = ()) -> CsrRequestDescriptor:
        subject = SubjectIdentity.from_profile(self.profile, fqdn)
        # The CN always goes first among the SANs
        sans = (fqdn,) + tuple(extra_sans)
        return CsrRequestDescriptor(subject=subject, sans=sans)

    def build_from_input(self, fqdn_raw, sans_raw) -> CsrRequestDescriptor:
        normalized = normalize(fqdn_raw, sans_raw)
        return self.build(normalized.fqdn, normalized.sans)


def build(fqdn, extra_sans=(), profile=DEFAULT_PROFILE):
    return RequestBuilder(profile).build(fqdn, extra_sans)


def numbered_sans(descriptor, quote=str):
    """The SAN list the way OpenSSL configs number it: DNS.1, DNS.2, ..."""
    return [
        "DNS.{} = {}".format(index, quote(name))
        for index, name in enumerate(descriptor.sans, start=1)
    ]


# Quotes, comment, variable and escape characters of the config syntax
CONFIG_SPECIALS = frozenset("\\#$\"'`")


def escape_config_value(value):
    """Backslash-escape a value for an openssl config file.

    Control characters would end or break the line and have no escape, so
    they raise ValueError."""
    for char in value:
        if ord(char) < 0x20 or ord(char) == 0x7f:
            raise ValueError(
                "Cannot put control character {!r} in an openssl config"
                .format(char)
            )
    return "".join("\\" + c if c in CONFIG_SPECIALS else c for c in value)


OPENSSL_CNF = """\
[ req ]
default_bits       = {key_bits}
prompt             = no
default_md         = sha256
req_extensions     = v3_req
distinguished_name = dn_req
string_mask        = utf8only
utf8               = yes

[ dn_req ]
{subject}

[ v3_req ]
subjectAltName = @alt_names

[ alt_names ]
{alt_names}
"""


def render_openssl_config(descriptor: CsrRequestDescriptor) -> str:
    """Render the descriptor as an `openssl req -config` file"""
    subject = "\n".join(
        "{} = {}".format(name, escape_config_value(value))
        for name, value in descriptor.subject.components()
    )
    return OPENSSL_CNF.format(
        key_bits=descriptor.key_bits,
        subject=subject,
        alt_names="\n".join(numbered_sans(descriptor, escape_config_value)),
    )
