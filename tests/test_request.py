#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""tests.test_request contains the unittests for csrgen.request"""
import unittest

from csrgen.request import (
    DEFAULT_PROFILE,
    CsrRequestDescriptor,
    MissingFqdn,
    RequestBuilder,
    SubjectIdentity,
    ValidationError,
    build,
    escape_config_value,
    normalize,
    numbered_sans,
    render_openssl_config,
    split_sans,
)

from . import fixtures


class TestNormalize(unittest.TestCase):

    def test_trims(self):
        out = normalize("  x.com\t", " a.com ,b.com  ")
        self.assertEqual(out.fqdn, "x.com")
        self.assertEqual(out.sans, ("a.com", "b.com"))

    def test_order_preserved(self):
        out = normalize("x.com", "b.com, a.com")
        self.assertEqual(out.sans, ("b.com", "a.com"))

    def test_blank_sans(self):
        for sans in fixtures.blank_sans:
            with self.subTest(sans=sans):
                self.assertEqual(normalize("x.com", sans).sans, ())

    def test_blanks_dropped_between(self):
        out = normalize("x.com", "c.com,, ,a.com,")
        self.assertEqual(out.sans, ("c.com", "a.com"))

    def test_missing_fqdn(self):
        for fqdn in ("", "  ", "\t\n", None):
            with self.subTest(fqdn=fqdn):
                with self.assertRaises(MissingFqdn):
                    normalize(fqdn, "a.com")

    def test_missing_fqdn_is_validation_error(self):
        with self.assertRaises(ValidationError):
            normalize("", "")
        with self.assertRaises(ValueError):
            normalize("", "")

    def test_no_dns_validation(self):
        out = normalize("not a hostname!", "under_score, *.wild.card")
        self.assertEqual(out.fqdn, "not a hostname!")
        self.assertEqual(out.sans, ("under_score", "*.wild.card"))

    def test_duplicates_kept(self):
        out = normalize("x.com", "x.com, a.com, a.com")
        self.assertEqual(out.sans, ("x.com", "a.com", "a.com"))

    def test_case_kept(self):
        out = normalize("Host.Example.ORG", "WWW.Example.org")
        self.assertEqual(out.fqdn, "Host.Example.ORG")
        self.assertEqual(out.sans, ("WWW.Example.org",))

    def test_split_sans_tokens_have_no_commas(self):
        for name in split_sans("a,b, c ,,d"):
            self.assertNotIn(",", name)


class TestBuild(unittest.TestCase):

    def test_scenario_server(self):
        normalized = normalize(fixtures.server_fqdn, fixtures.server_sans)
        descriptor = build(normalized.fqdn, normalized.sans)
        self.assertEqual(descriptor.subject.common_name, "server.example.edu")
        self.assertEqual(descriptor.sans, fixtures.server_san_list)

    def test_scenario_no_sans(self):
        normalized = normalize("host.example.org", "")
        descriptor = build(normalized.fqdn, normalized.sans)
        self.assertEqual(descriptor.sans, ("host.example.org",))

    def test_scenario_casing(self):
        descriptor = RequestBuilder().build_from_input("Host.Example.ORG", "")
        self.assertEqual(descriptor.common_name, "Host.Example.ORG")
        self.assertEqual(descriptor.sans[0], "Host.Example.ORG")

    def test_cn_first_san(self):
        for fqdn, sans in (
            ("a.com", ""),
            ("a.com", "b.com"),
            (" a.com ", "b.com, a.com"),
            ("a.com", " , ,, "),
        ):
            with self.subTest(fqdn=fqdn, sans=sans):
                normalized = normalize(fqdn, sans)
                descriptor = build(normalized.fqdn, normalized.sans)
                self.assertEqual(descriptor.sans[0], fqdn.strip())
                self.assertEqual(descriptor.common_name, fqdn.strip())

    def test_fqdn_repeated_in_sans(self):
        descriptor = RequestBuilder().build_from_input("x.com", "x.com")
        self.assertEqual(descriptor.sans, ("x.com", "x.com"))

    def test_deterministic(self):
        one = build("x.com", ["b.com", "a.com"])
        two = build("x.com", ("b.com", "a.com"))
        self.assertEqual(one, two)
        self.assertEqual(one.subject, two.subject)
        self.assertEqual(one.sans, two.sans)

    def test_defaults(self):
        descriptor = build("x.com")
        self.assertEqual(descriptor.signature_algorithm, "SHA256withRSA")
        self.assertEqual(descriptor.key_bits, 2048)
        self.assertIsInstance(descriptor, CsrRequestDescriptor)

    def test_subject_order(self):
        descriptor = build("x.com")
        self.assertEqual(
            descriptor.subject.components(),
            fixtures.bc_subject + (("CN", "x.com"),),
        )

    def test_injected_profile(self):
        descriptor = RequestBuilder(fixtures.other_profile).build("x.se")
        self.assertEqual(
            descriptor.subject,
            SubjectIdentity.from_profile(fixtures.other_profile, "x.se"),
        )
        self.assertEqual(descriptor.subject.state, "Uppsala län")
        # Default profile untouched
        self.assertEqual(DEFAULT_PROFILE.country, "US")

    def test_immutable(self):
        descriptor = build("x.com", ["a.com"])
        with self.assertRaises(AttributeError):
            descriptor.sans = ()
        with self.assertRaises(AttributeError):
            descriptor.subject.common_name = "y.com"

    def test_input_list_not_shared(self):
        extra = ["a.com"]
        descriptor = build("x.com", extra)
        extra.append("b.com")
        self.assertEqual(descriptor.sans, ("x.com", "a.com"))


class TestOpenSSLConfig(unittest.TestCase):

    def test_numbered_sans(self):
        descriptor = build(fixtures.server_fqdn, fixtures.server_san_list[1:])
        self.assertEqual(numbered_sans(descriptor), [
            "DNS.1 = server.example.edu",
            "DNS.2 = www.server.example.edu",
            "DNS.3 = api.server.example.edu",
        ])

    def test_render(self):
        cnf = render_openssl_config(build("x.com", ["b.com", "a.com"]))
        lines = cnf.splitlines()

        self.assertIn("default_bits       = 2048", lines)
        self.assertIn("default_md         = sha256", lines)
        self.assertIn("prompt             = no", lines)
        self.assertIn("subjectAltName = @alt_names", lines)

        subject = lines.index("[ dn_req ]")
        self.assertEqual(lines[subject + 1:subject + 8], [
            "C = US",
            "ST = MA",
            "L = Boston",
            "O = Trustees of Boston College",
            "OU = BC",
            "emailAddress = itsstaff.ops@bc.edu",
            "CN = x.com",
        ])

        alt = lines.index("[ alt_names ]")
        self.assertEqual(
            lines[alt + 1:],
            ["DNS.1 = x.com", "DNS.2 = b.com", "DNS.3 = a.com"],
        )

    def test_escape_specials(self):
        self.assertEqual(escape_config_value("plain.example.com"),
                         "plain.example.com")
        self.assertEqual(escape_config_value('a#b$c"d\\e'),
                         'a\\#b\\$c\\"d\\\\e')

    def test_render_escapes_values(self):
        profile = DEFAULT_PROFILE._replace(organization='Smith "$Sons" #1')
        descriptor = build(
            "x.com", ["a.example.com#frag", "$HOME.example.com"], profile
        )
        lines = render_openssl_config(descriptor).splitlines()

        self.assertIn('O = Smith \\"\\$Sons\\" \\#1', lines)
        alt = lines.index("[ alt_names ]")
        self.assertEqual(lines[alt + 1:], [
            "DNS.1 = x.com",
            "DNS.2 = a.example.com\\#frag",
            "DNS.3 = \\$HOME.example.com",
        ])

    def test_render_control_characters(self):
        # A newline inside a SAN would start a new DNS.n entry
        descriptor = RequestBuilder().build_from_input(
            "x.example.com", "a.example.com\nDNS.9 = evil.example.net"
        )
        with self.assertRaises(ValueError):
            render_openssl_config(descriptor)
