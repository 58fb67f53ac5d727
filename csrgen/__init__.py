#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
from pyramid.config import Configurator


def main(global_config, **settings):
    """This function returns a Pyramid WSGI application."""
    config = Configurator(settings=settings)
    config.add_route("csr", "/csr", request_method="POST")
    config.add_route("profile", "/profile", request_method="GET")
    config.scan(".views")
    return config.make_wsgi_app()
