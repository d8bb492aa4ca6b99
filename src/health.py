from party_utils import __version__
from party_utils.http import json_response, request_method, request_path
from party_utils.logger import log


def lambda_handler(event, context):
    path = request_path(event) or "/healthz"
    log("health.check", path=path, method=request_method(event) or "GET")

    if path.rstrip("/").endswith("/version"):
        return json_response(200, {"version": __version__})
    return json_response(200, {"status": "ok"})
