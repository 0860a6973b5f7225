"""
Unit tests for the Lambda entry points.
"""

import base64
import json
import pytest
from unittest.mock import AsyncMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_records.app import lambda_handler
from service_records.app.handlers import RecordHandlers


@pytest.fixture(autouse=True)
def warm_handlers(monkeypatch, record_service):
    """Pretend the container is warm, with handlers over the fakes."""
    monkeypatch.setattr(lambda_handler, "_handlers", RecordHandlers(record_service))


def body(response):
    return json.loads(response["body"])


def test_add_read_delete_flow():
    response = lambda_handler.add({"body": '{"svc": {"region": "us", "port": 8080}}'})
    assert response["statusCode"] == 201
    assert body(response) == {"message": "Data saved successfully"}

    response = lambda_handler.read({"queryStringParameters": {"key": "svc.port"}})
    assert response["statusCode"] == 200
    assert body(response) == {"svc.port": 8080}

    response = lambda_handler.delete({"queryStringParameters": {"key": "svc"}})
    assert response["statusCode"] == 200

    response = lambda_handler.read({"queryStringParameters": {"key": "svc.port"}})
    assert response["statusCode"] == 404


def test_add_base64_body(s3_client):
    encoded = base64.b64encode(b'{"a": 1}').decode()

    response = lambda_handler.add({"body": encoded, "isBase64Encoded": True})

    assert response["statusCode"] == 201
    assert s3_client.document() == {"a": 1}


def test_add_invalid_json():
    response = lambda_handler.add({"body": "nope"})

    assert response["statusCode"] == 400
    assert body(response)["error"] == "Invalid JSON format"


@pytest.mark.parametrize("event", [{}, {"queryStringParameters": None}, {"queryStringParameters": {"key": " "}}])
def test_read_missing_key(event):
    response = lambda_handler.read(event)

    assert response["statusCode"] == 400
    assert body(response)["error"] == "Missing 'key' parameter"


def test_unexpected_error_returns_500(monkeypatch, record_service):
    monkeypatch.setattr(record_service, "delete", AsyncMock(side_effect=RuntimeError("boom")))

    response = lambda_handler.delete({"queryStringParameters": {"key": "a"}})

    assert response["statusCode"] == 500
    assert body(response)["details"] == "boom"


def test_clear_cache(redis_client):
    lambda_handler.add({"body": '{"a": 1}'})

    response = lambda_handler.clear_cache({})

    assert response["statusCode"] == 200
    assert redis_client.data == {}


def test_json_content_type():
    response = lambda_handler.hello({})

    assert response["headers"]["content-type"].startswith("application/json")
    assert response["statusCode"] == 200
