"""Shared fixtures: API Gateway event builders and an in-memory connector."""

import pytest


class FakeCollection:
    def __init__(self, name, store):
        self.name = name
        self.store = store

    def add(self, document):
        if self.store.error is not None:
            raise self.store.error
        document_id = f"doc-{len(self.store.documents) + 1}"
        self.store.documents.append((self.name, document_id, document))
        return document_id


class FakeStore:
    def __init__(self):
        self.documents = []
        self.error = None

    def collection(self, name):
        return FakeCollection(name, self)


class FakeConnector:
    def __init__(self):
        self.store = FakeStore()
        self.calls = 0

    def get_connection(self):
        self.calls += 1
        return self.store


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def rest_event():
    """Build an API Gateway REST (v1) proxy event."""

    def _build(method="POST", body=None, headers=None, path="/capture", query=None, base64=False):
        event = {
            "resource": path,
            "path": path,
            "httpMethod": method,
            "headers": headers or {},
            "multiValueHeaders": None,
            "queryStringParameters": query,
            "multiValueQueryStringParameters": None,
            "requestContext": {
                "requestId": "gw-req-1",
                "identity": {"sourceIp": "203.0.113.9", "userAgent": "context-agent"},
            },
            "body": body,
            "isBase64Encoded": base64,
        }
        return event

    return _build


@pytest.fixture
def http_api_event():
    """Build an API Gateway HTTP API (v2) proxy event."""

    def _build(method="POST", body=None, headers=None, raw_path="/capture", raw_query=""):
        event = {
            "version": "2.0",
            "routeKey": "$default",
            "rawPath": raw_path,
            "rawQueryString": raw_query,
            "headers": headers or {},
            "requestContext": {
                "requestId": "gw-req-2",
                "http": {
                    "method": method,
                    "path": raw_path,
                    "sourceIp": "198.51.100.7",
                    "userAgent": "v2-agent",
                },
            },
            "isBase64Encoded": False,
        }
        if body is not None:
            event["body"] = body
        return event

    return _build
