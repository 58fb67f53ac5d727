#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
import unittest

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_private_key


class CSRTestCase(unittest.TestCase):
    """Assertions on PEM output, whichever backend made it"""

    def load_csr(self, csr_pem):
        csr = x509.load_pem_x509_csr(csr_pem.encode("utf8"))
        self.assertTrue(csr.is_signature_valid)
        return csr

    def assertSubject(self, csr, components):
        self.assertEqual(
            [(a.oid, a.value) for a in csr.subject],
            list(components),
        )

    def assertSans(self, csr, sans):
        ext = csr.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        )
        self.assertFalse(ext.critical)
        self.assertEqual(ext.value.get_values_for_type(x509.DNSName), list(sans))
        # DNS names only
        self.assertEqual(len(ext.value), len(sans))

    def assertSignedRequest(self, signed, descriptor, oids):
        """Full structural check of a SignedRequest against its descriptor"""
        csr = self.load_csr(signed.csr_pem)
        self.assertSubject(
            csr,
            [(oids[k], v) for k, v in descriptor.subject.components()],
        )
        self.assertSans(csr, descriptor.sans)
        self.assertIsInstance(csr.signature_hash_algorithm, hashes.SHA256)

        public_key = csr.public_key()
        self.assertIsInstance(public_key, rsa.RSAPublicKey)
        self.assertEqual(public_key.key_size, descriptor.key_bits)

        self.assertIn("PRIVATE KEY", signed.key_pem)
        key = load_pem_private_key(signed.key_pem.encode("utf8"), password=None)
        self.assertEqual(
            key.public_key().public_numbers(), public_key.public_numbers()
        )
        return csr
