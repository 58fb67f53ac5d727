#! /usr/bin/env python
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :

import json
import logging

from pyramid.httpexceptions import (
    HTTPLengthRequired,
    HTTPRequestEntityTooLarge,
    HTTPBadRequest,
    HTTPInternalServerError,
    HTTPError
    )
from pyramid.view import view_config

from .certlib import (
    CryptoError,
    artifact_names,
    generate_csr,
    get_backend,
    )
from .config import get_backend_name, get_profile
from .request import ValidationError

logger = logging.getLogger(__name__)

# Maximum length allowed for request bodies. Two host name fields, even
# with a long SAN list, stay far below this.
_MAXLEN = 16 * 2**10


def raise_for_length(req, limit=_MAXLEN):
    # two possible error cases: no length specified, or length exceeds limit
    # raise appropriate exception if either applies
    length = req.content_length
    if length is None:
        raise HTTPLengthRequired
    if length > limit:
        raise HTTPRequestEntityTooLarge(
            "Max size: {0} kB".format(limit / 2**10)
            )


def request_fields(req):
    """Returns (fqdn, sans) from a JSON or form encoded body"""
    if req.content_type == "application/json":
        try:
            body = json.loads(req.body.decode("utf8"))
        except (UnicodeDecodeError, ValueError) as err:
            raise HTTPBadRequest("invalid JSON: {0}".format(err))
        if not isinstance(body, dict):
            raise HTTPBadRequest("expected a JSON object")
    else:
        body = req.POST

    fqdn, sans = body.get("fqdn"), body.get("sans")
    if isinstance(sans, (list, tuple)):
        if not all(isinstance(name, str) for name in sans):
            raise HTTPBadRequest("sans must only contain strings")
        sans = ",".join(sans)
    for value in fqdn, sans:
        if value is not None and not isinstance(value, str):
            raise HTTPBadRequest("fqdn and sans must be strings")
    return fqdn, sans


@view_config(context=HTTPError)
def HTTPErrorToJson(exc, request):
    exc.json_body = {
        "status": exc.code,
        "title": exc.title,
        "detail": exc.detail
    }
    exc.content_type = "application/problem+json"
    request.response = exc
    return request.response


@view_config(route_name="csr", request_method="POST", renderer="json")
def csr_create(request):
    raise_for_length(request)
    fqdn, sans = request_fields(request)
    settings = request.registry.settings or {}

    try:
        backend = get_backend(get_backend_name(settings=settings))
    except ValueError as err:
        logger.error("Misconfigured backend: %s", err)
        raise HTTPInternalServerError("backend misconfigured")

    try:
        descriptor, signed = generate_csr(
            fqdn, sans, backend=backend, profile=get_profile(settings=settings)
        )
    except ValidationError as err:
        raise HTTPBadRequest(str(err))
    except CryptoError as err:
        logger.error("CSR generation failed: %s", err)
        raise HTTPInternalServerError("crypto error: {0}".format(err))

    key_name, csr_name = artifact_names(descriptor.common_name)
    return {
        "fqdn": descriptor.common_name,
        "sans": list(descriptor.sans),
        "key_name": key_name,
        "key": signed.key_pem,
        "csr_name": csr_name,
        "csr": signed.csr_pem,
    }


@view_config(route_name="profile", request_method="GET",
             renderer="json", http_cache=3600)
def profile_fetch(request):
    profile = get_profile(settings=request.registry.settings or {})
    return profile._asdict()
