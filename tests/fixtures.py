#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
from csrgen.request import OrganizationProfile

server_fqdn = "server.example.edu"
server_sans = "www.server.example.edu, api.server.example.edu"
server_san_list = (
    "server.example.edu",
    "www.server.example.edu",
    "api.server.example.edu",
)

bc_subject = (
    ("C", "US"),
    ("ST", "MA"),
    ("L", "Boston"),
    ("O", "Trustees of Boston College"),
    ("OU", "BC"),
    ("emailAddress", "itsstaff.ops@bc.edu"),
)

other_profile = OrganizationProfile(
    country="SE",
    state="Uppsala län",
    locality="Uppsala",
    organization="Exempel AB",
    organizational_unit="Drift",
    email="ops@example.se",
)

# Inputs that should never yield an extra SAN
blank_sans = ("", None, " ", ",", " , ,, ", "\t,\n")
