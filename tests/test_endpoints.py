"""Tests for the capture endpoint variants."""

import base64
import json

import pytest

from endpoints.capture import main as capture_main
from endpoints.capture_save import main as capture_save_main
from endpoints.capture_xml import main as capture_xml_main

XML_BODY = '<?xml version="1.0" encoding="UTF-8"?><invoice><id>7</id></invoice>'


@pytest.fixture
def use_connector(monkeypatch, connector):
    def _use(module):
        monkeypatch.setattr(module, "connector", connector)
        return connector

    return _use


class TestCaptureEndpoint:
    def test_stores_xml_metadata(self, rest_event, use_connector):
        connector = use_connector(capture_main)
        response = capture_main.handler(rest_event(body=XML_BODY, headers={"Content-Type": "text/xml"}), None)
        payload = json.loads(response["body"])

        assert payload["message"] == "Request data captured successfully"
        assert payload["data"]["xmlMetadata"]["rootElement"] == "invoice"
        assert connector.store.documents[0][2]["xmlMetadata"]["hasDoctype"] is False

    def test_profile(self):
        assert capture_main.PROFILE.extract_xml_metadata is True
        assert capture_main.PROFILE.collection_type is None


class TestCaptureSaveEndpoint:
    def test_skips_xml_metadata(self, http_api_event, use_connector):
        use_connector(capture_save_main)
        event = http_api_event(body=XML_BODY, headers={"content-type": "text/plain"}, raw_path="/capture-save")
        payload = json.loads(capture_save_main.handler(event, None)["body"])

        assert payload["data"]["bodyType"] == "xml"
        assert "xmlMetadata" not in payload["data"]
        assert payload["firestore"]["message"] == "Data saved to Firestore successfully"

    def test_rejects_get(self, http_api_event, use_connector):
        use_connector(capture_save_main)
        response = capture_save_main.handler(http_api_event(method="GET"), None)
        assert response["statusCode"] == 405
        assert json.loads(response["body"])["receivedMethod"] == "GET"


class TestCaptureXmlEndpoint:
    def test_xml_messages_and_tag(self, rest_event, use_connector):
        connector = use_connector(capture_xml_main)
        response = capture_xml_main.handler(rest_event(body=XML_BODY, headers={"Content-Type": "text/plain"}), None)
        payload = json.loads(response["body"])

        assert payload["message"] == "XML data captured successfully"
        assert payload["firestore"]["message"] == "XML data saved to Firestore successfully"
        assert connector.store.documents[0][2]["collectionType"] == "xml_capture"

    def test_non_xml_uses_generic_message(self, rest_event, use_connector):
        use_connector(capture_xml_main)
        event = rest_event(body='{"a":1}', headers={"Content-Type": "application/json"})
        payload = json.loads(capture_xml_main.handler(event, None)["body"])
        assert payload["message"] == "Request data captured successfully"

    def test_base64_xml(self, rest_event, use_connector):
        use_connector(capture_xml_main)
        encoded = base64.b64encode(XML_BODY.encode("utf-8")).decode()
        payload = json.loads(capture_xml_main.handler(rest_event(body=encoded, base64=True), None)["body"])
        assert payload["data"]["rawBody"] == XML_BODY
        assert payload["data"]["bodyType"] == "xml"


class TestMalformedEvents:
    @pytest.mark.parametrize("module", [capture_main, capture_save_main, capture_xml_main])
    def test_non_dict_event_returns_500(self, module, use_connector):
        connector = use_connector(module)
        response = module.handler("not-an-event", None)
        assert response["statusCode"] == 500
        assert json.loads(response["body"])["error"] == "Internal server error"
        assert connector.calls == 0
