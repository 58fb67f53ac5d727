from setuptools import setup, find_packages

requires = [
    "pyramid",
    "waitress",
    "cryptography >= 38",
    "pyOpenSSL >= 22.0.0",
    # Transient dependency from pyramid->webob,
    # should be fixed in a later release of webob
    "legacy-cgi; python_version >= '3.13'"
]

tests_require = [
    "pytest",
]

setup(
    name="csrgen",
    version="1.0.0",
    python_requires=">=3.7",
    description="csrgen",
    long_description="""
csrgen generates a private key and a certificate signing request for a
server. The operator supplies the fully qualified domain name and a list of
additional host names; the subject carries a fixed organization profile and
the FQDN as common name, and the FQDN plus the additional names are requested
as DNS subject alternative names.

Keys and requests can be made with the cryptography library, pyOpenSSL or the
openssl executable, from the command line or over a small JSON web service.
      """,
    classifiers=[
        "Programming Language :: Python",
        "Framework :: Pyramid",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
        "Topic :: Security :: Cryptography",
    ],
    keywords="web wsgi pyramid certificates x509 csr pkcs10 ssl tls",
    packages=find_packages(exclude=["tests"]),
    include_package_data=True,
    zip_safe=False,
    test_suite="tests",
    install_requires=requires,
    extras_require={"testing": tests_require},
    entry_points="""\
      [paste.app_factory]
      main = csrgen:main
      [console_scripts]
      csrgen = csrgen.scripts.generate:main
      csrgen_serve = csrgen.scripts.serve:main
      """,
)
