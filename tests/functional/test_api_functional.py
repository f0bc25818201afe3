"""Functional tests for the HTTP surface under /api/v1.

Requests go through the in-process FastAPI TestClient built by the conftest
fixtures. A small helper `invoke` returns a structured envelope so assertions
read the same way for success and problem+json responses.
"""

from __future__ import annotations

import csv
import io
import typing as t
import uuid

import pytest

PROBLEM = "application/problem+json"


class ResponseEnvelope(t.TypedDict, total=False):
    status: int
    content_type: str
    headers: dict[str, str]
    body: t.Any


def invoke(client, method: str, path: str, *, headers=None, json=None, content=None) -> ResponseEnvelope:
    """Send one request and return status, content type, headers and parsed body."""
    resp = client.request(method, path, headers=headers or {}, json=json, content=content)
    ctype = resp.headers.get("content-type", "")
    body: t.Any
    if "json" in ctype:
        body = resp.json()
    else:
        body = resp.content
    return ResponseEnvelope(status=resp.status_code, content_type=ctype, headers=dict(resp.headers), body=body)


def _create(client, owner_headers, name="Field Trip", password=None) -> dict:
    payload = {"name": name}
    if password is not None:
        payload["password"] = password
    env = invoke(client, "POST", "/api/v1/collections", headers=owner_headers, json=payload)
    assert env["status"] == 201, env
    return env["body"]


def _setup_roster(client, owner_headers, collection_id: str, names: list[str]) -> None:
    for name in names:
        env = invoke(
            client, "POST", f"/api/v1/collections/{collection_id}/submitters", headers=owner_headers, json={"name": name}
        )
        assert env["status"] == 201, env


# ----------------------------------------------------------------------------
# Organizer endpoints
# ----------------------------------------------------------------------------


def test_create_collection_returns_tokens(client, owner_headers):
    body = _create(client, owner_headers)
    assert set(body) == {"collection_id", "admin_token", "submission_token"}
    assert body["admin_token"] != body["submission_token"]

    listed = invoke(client, "GET", "/api/v1/collections", headers=owner_headers)
    assert listed["status"] == 200
    assert [c["name"] for c in listed["body"]["items"]] == ["Field Trip"]
    assert listed["body"]["items"][0]["has_password"] is False


def test_create_collection_without_principal_is_401_problem(client):
    env = invoke(client, "POST", "/api/v1/collections", json={"name": "Field Trip"})
    assert env["status"] == 401
    assert env["content_type"].startswith(PROBLEM)
    assert env["body"]["code"] == "AUTH_PRINCIPAL_MISSING"


def test_blank_collection_name_is_rejected_with_validation_problem(client, owner_headers):
    env = invoke(client, "POST", "/api/v1/collections", headers=owner_headers, json={"name": "   "})
    assert env["status"] == 422
    assert env["content_type"].startswith(PROBLEM)
    assert env["body"]["code"] == "REQUEST_INVALID"
    assert env["body"]["errors"]


def test_duplicate_submitter_is_409(client, owner_headers):
    created = _create(client, owner_headers)
    _setup_roster(client, owner_headers, created["collection_id"], ["Taro"])
    env = invoke(
        client,
        "POST",
        f"/api/v1/collections/{created['collection_id']}/submitters",
        headers=owner_headers,
        json={"name": "Taro"},
    )
    assert env["status"] == 409
    assert env["body"]["code"] == "SUBMITTER_DUPLICATE"


def test_replace_fields_returns_stored_order(client, owner_headers):
    created = _create(client, owner_headers)
    env = invoke(
        client,
        "PUT",
        f"/api/v1/collections/{created['collection_id']}/fields",
        headers=owner_headers,
        json={
            "fields": [
                {"label": "Name", "kind": "choice", "required": True},
                {"label": "Photo", "kind": "image"},
                {"label": "Size", "kind": "choice", "choice_options": ["S", "M"]},
            ]
        },
    )
    assert env["status"] == 200
    assert [(f["label"], f["order"]) for f in env["body"]["fields"]] == [("Name", 0), ("Photo", 1), ("Size", 2)]


def test_choice_options_on_non_choice_field_is_422(client, owner_headers):
    created = _create(client, owner_headers)
    env = invoke(
        client,
        "PUT",
        f"/api/v1/collections/{created['collection_id']}/fields",
        headers=owner_headers,
        json={"fields": [{"label": "Age", "kind": "number", "choice_options": ["1"]}]},
    )
    assert env["status"] == 422
    assert env["body"]["code"] == "REQUEST_INVALID"


def test_replace_fields_on_unknown_collection_is_404(client, owner_headers):
    env = invoke(client, "PUT", "/api/v1/collections/missing/fields", headers=owner_headers, json={"fields": []})
    assert env["status"] == 404
    assert env["body"]["code"] == "COLLECTION_NOT_FOUND"


def test_schema_and_roster_edits_are_owner_only(client, owner_headers, other_owner_headers):
    created = _create(client, owner_headers)
    form = invoke(client, "GET", f"/api/v1/forms/{created['submission_token']}")
    collection_id = form["body"]["collection"]["collection_id"]

    fields = invoke(
        client, "PUT", f"/api/v1/collections/{collection_id}/fields", headers=other_owner_headers, json={"fields": []}
    )
    assert fields["status"] == 403
    assert fields["content_type"].startswith(PROBLEM)
    assert fields["body"]["code"] == "COLLECTION_NOT_OWNER"

    roster = invoke(
        client,
        "POST",
        f"/api/v1/collections/{collection_id}/submitters",
        headers=other_owner_headers,
        json={"name": "Mallory"},
    )
    assert roster["status"] == 403
    assert roster["body"]["code"] == "COLLECTION_NOT_OWNER"

    after = invoke(client, "GET", f"/api/v1/forms/{created['submission_token']}")["body"]
    assert [f["label"] for f in after["fields"]] == ["Name"]
    assert after["submitters"] == []


# ----------------------------------------------------------------------------
# Submission link
# ----------------------------------------------------------------------------


def test_form_view_exposes_fields_and_roster_but_no_admin_data(client, owner_headers):
    created = _create(client, owner_headers, password="abc123")
    _setup_roster(client, owner_headers, created["collection_id"], ["Taro", "Hana"])

    env = invoke(client, "GET", f"/api/v1/forms/{created['submission_token']}")
    assert env["status"] == 200
    body = env["body"]
    assert body["collection"]["name"] == "Field Trip"
    assert "admin_token" not in body["collection"]
    assert "password_secret" not in body["collection"]
    assert body["submitters"] == ["Taro", "Hana"]
    assert body["fields"][0]["label"] == "Name"


def test_unknown_submission_token_is_404(client):
    env = invoke(client, "GET", "/api/v1/forms/nope")
    assert env["status"] == 404
    assert env["content_type"].startswith(PROBLEM)
    assert env["body"]["code"] == "COLLECTION_NOT_FOUND"


def test_submit_then_resubmit_overwrites(client, owner_headers):
    created = _create(client, owner_headers)
    path = f"/api/v1/forms/{created['submission_token']}/responses"

    first = invoke(client, "POST", path, json={"submitter_name": "Alice", "responses": {"comment": "v1"}})
    assert first["status"] == 201
    assert first["body"]["overwritten"] is False

    second = invoke(client, "POST", path, json={"submitter_name": "Alice", "responses": {"age": 30}})
    assert second["status"] == 200
    assert second["body"] == {"submission_id": first["body"]["submission_id"], "overwritten": True}

    existing = invoke(client, "GET", f"{path}/Alice")
    assert existing["status"] == 200
    assert existing["body"]["responses"] == {"age": 30}

    missing = invoke(client, "GET", f"{path}/Bob")
    assert missing["status"] == 404
    assert missing["body"]["code"] == "SUBMISSION_NOT_FOUND"


def test_malformed_response_value_is_422(client, owner_headers):
    created = _create(client, owner_headers)
    env = invoke(
        client,
        "POST",
        f"/api/v1/forms/{created['submission_token']}/responses",
        json={"submitter_name": "Alice", "responses": {"photo": {"kind": "attachment", "storage_id": ""}}},
    )
    assert env["status"] == 422
    assert env["body"]["code"] == "REQUEST_INVALID"


@pytest.mark.parametrize("number", ["1e999", "-1e999", "1" + "0" * 400])
def test_out_of_range_numbers_are_rejected_and_admin_view_stays_readable(client, owner_headers, number):
    created = _create(client, owner_headers)
    body = '{"submitter_name": "Taro", "responses": {"age": %s}}' % number
    env = invoke(
        client,
        "POST",
        f"/api/v1/forms/{created['submission_token']}/responses",
        headers={"Content-Type": "application/json"},
        content=body.encode("utf-8"),
    )
    assert env["status"] == 422
    assert env["body"]["code"] == "REQUEST_INVALID"

    admin = invoke(client, "GET", f"/api/v1/admin/{created['admin_token']}")
    assert admin["status"] == 200
    assert admin["body"]["submissions"] == []


def test_check_endpoint_is_advisory_only(client, owner_headers):
    created = _create(client, owner_headers)
    invoke(
        client,
        "PUT",
        f"/api/v1/collections/{created['collection_id']}/fields",
        headers=owner_headers,
        json={"fields": [{"label": "Name", "kind": "choice", "required": True}, {"label": "Age", "kind": "number", "required": True}]},
    )
    env = invoke(
        client,
        "POST",
        f"/api/v1/forms/{created['submission_token']}/check",
        json={"submitter_name": "Alice", "responses": {}},
    )
    assert env["status"] == 200
    assert env["body"] == {"valid": False, "errors": {"Age": "Age is required"}}

    admin = invoke(client, "GET", f"/api/v1/admin/{created['admin_token']}")
    assert admin["body"]["submissions"] == []


# ----------------------------------------------------------------------------
# Admin link
# ----------------------------------------------------------------------------


def test_admin_aggregate_reconciles_roster(client, owner_headers):
    created = _create(client, owner_headers)
    _setup_roster(client, owner_headers, created["collection_id"], ["Taro", "Hana"])
    invoke(
        client,
        "POST",
        f"/api/v1/forms/{created['submission_token']}/responses",
        json={"submitter_name": "Taro", "responses": {}},
    )

    env = invoke(client, "GET", f"/api/v1/admin/{created['admin_token']}")
    assert env["status"] == 200
    body = env["body"]
    assert body["non_respondents"] == ["Hana"]
    assert len(body["submissions"]) == 1
    assert [s["name"] for s in body["submitters"]] == ["Taro", "Hana"]
    assert "password_secret" not in body["collection"]


def test_unknown_admin_token_is_404(client):
    env = invoke(client, "GET", "/api/v1/admin/nope")
    assert env["status"] == 404
    assert env["body"]["code"] == "COLLECTION_NOT_FOUND"

    required = invoke(client, "GET", "/api/v1/admin/nope/password-required")
    assert required["body"] == {"exists": False, "requires_password": False}

    verify = invoke(client, "POST", "/api/v1/admin/nope/verify-password", json={"password": "x"})
    assert verify["status"] == 404


def test_field_trip_password_flow_over_http(client, owner_headers):
    created = _create(client, owner_headers, password="abc123")
    base = f"/api/v1/admin/{created['admin_token']}"

    required = invoke(client, "GET", f"{base}/password-required")
    assert required["body"] == {"exists": True, "requires_password": True, "name": "Field Trip"}

    wrong = invoke(client, "POST", f"{base}/verify-password", json={"password": "wrong"})
    assert wrong["status"] == 403
    assert wrong["body"]["code"] == "ADMIN_PASSWORD_INVALID"

    right = invoke(client, "POST", f"{base}/verify-password", json={"password": "abc123"})
    assert right["status"] == 200
    assert right["body"] == {"granted": True}

    locked = invoke(client, "GET", base)
    assert locked["status"] == 403
    unlocked = invoke(client, "GET", base, headers={"X-Admin-Password": "abc123"})
    assert unlocked["status"] == 200


def test_password_change_is_owner_only(client, owner_headers, other_owner_headers):
    created = _create(client, owner_headers)
    path = f"/api/v1/admin/{created['admin_token']}/password"

    denied = invoke(client, "PUT", path, headers=other_owner_headers, json={"password": "pw"})
    assert denied["status"] == 403
    assert denied["body"]["code"] == "COLLECTION_NOT_OWNER"

    anonymous = invoke(client, "PUT", path, json={"password": "pw"})
    assert anonymous["status"] == 401

    changed = invoke(client, "PUT", path, headers=owner_headers, json={"password": "pw"})
    assert changed["body"] == {"requires_password": True}
    cleared = invoke(client, "PUT", path, headers=owner_headers, json={"password": ""})
    assert cleared["body"] == {"requires_password": False}


# ----------------------------------------------------------------------------
# Uploads and CSV export
# ----------------------------------------------------------------------------


def _upload(client, data: bytes, content_type: str = "image/png") -> str:
    target = invoke(client, "POST", "/api/v1/uploads")
    assert target["status"] == 201
    put = invoke(client, "PUT", target["body"]["upload_url"], headers={"Content-Type": content_type}, content=data)
    assert put["status"] == 204
    return target["body"]["storage_id"]


def test_upload_round_trip_and_download(client):
    storage_id = _upload(client, b"\x89PNG-bytes")
    assert storage_id.startswith("k") and len(storage_id) == 32

    env = invoke(client, "GET", f"/api/v1/files/{storage_id}")
    assert env["status"] == 200
    assert env["content_type"] == "image/png"
    assert env["body"] == b"\x89PNG-bytes"


def test_upload_bytes_are_written_off_the_event_loop(client, monkeypatch):
    from collectbox.routes import uploads

    offloaded = []
    real = uploads.run_in_threadpool

    async def recording(func, *args):
        offloaded.append(getattr(func, "__name__", ""))
        return await real(func, *args)

    monkeypatch.setattr(uploads, "run_in_threadpool", recording)
    storage_id = _upload(client, b"bytes")

    assert offloaded == ["put"]
    assert invoke(client, "GET", f"/api/v1/files/{storage_id}")["body"] == b"bytes"


def test_upload_rules(client):
    again = invoke(client, "PUT", "/api/v1/uploads/kNeverIssued", content=b"x")
    assert again["status"] == 404
    assert again["body"]["code"] == "UPLOAD_NOT_FOUND"

    target = invoke(client, "POST", "/api/v1/uploads")["body"]
    too_big = invoke(client, "PUT", target["upload_url"], content=b"x" * 2048)
    assert too_big["status"] == 413
    assert too_big["body"]["code"] == "UPLOAD_TOO_LARGE"

    missing = invoke(client, "GET", "/api/v1/files/kMissing")
    assert missing["status"] == 404


def test_csv_export_lists_submissions_with_attachment_urls(client, owner_headers):
    created = _create(client, owner_headers)
    invoke(
        client,
        "PUT",
        f"/api/v1/collections/{created['collection_id']}/fields",
        headers=owner_headers,
        json={
            "fields": [
                {"label": "Name", "kind": "choice", "required": True},
                {"label": "Photo", "kind": "image"},
                {"label": "Comment", "kind": "text"},
            ]
        },
    )
    storage_id = _upload(client, b"img")
    submit = f"/api/v1/forms/{created['submission_token']}/responses"
    invoke(
        client,
        "POST",
        submit,
        json={
            "submitter_name": "Taro",
            "responses": {"photo": {"kind": "attachment", "storage_id": storage_id}, "comment": 'says "hi", twice'},
        },
    )
    invoke(
        client,
        "POST",
        submit,
        json={"submitter_name": "Hana", "responses": {"photo": {"kind": "attachment", "storage_id": "kGone"}}},
    )

    env = invoke(client, "GET", f"/api/v1/admin/{created['admin_token']}/export.csv")
    assert env["status"] == 200
    assert env["content_type"].startswith("text/csv")
    assert env["headers"]["content-disposition"] == "attachment; filename*=UTF-8''Field%20Trip_submissions.csv"
    assert env["body"].startswith(b"\xef\xbb\xbf")

    rows = list(csv.reader(io.StringIO(env["body"].decode("utf-8-sig"))))
    assert rows[0] == ["Submitter", "Name", "Photo", "Comment"]
    assert rows[1] == ["Taro", "Taro", f"http://testserver/api/v1/files/{storage_id}", 'says "hi", twice']
    assert rows[2] == ["Hana", "Hana", "", ""]


def test_csv_export_honours_password(client, owner_headers):
    created = _create(client, owner_headers, password="abc123")
    path = f"/api/v1/admin/{created['admin_token']}/export.csv"
    assert invoke(client, "GET", path)["status"] == 403
    assert invoke(client, "GET", path, headers={"X-Admin-Password": "abc123"})["status"] == 200
    assert invoke(client, "GET", "/api/v1/admin/nope/export.csv")["status"] == 404


# ----------------------------------------------------------------------------
# Cross-cutting
# ----------------------------------------------------------------------------


def test_request_id_is_echoed_or_generated(client):
    echoed = invoke(client, "GET", "/health", headers={"X-Request-Id": "req-123"})
    assert echoed["headers"]["x-request-id"] == "req-123"

    generated = invoke(client, "GET", "/health", headers={"X-Request-Id": "bad id with spaces"})
    assert str(uuid.UUID(generated["headers"]["x-request-id"])) == generated["headers"]["x-request-id"]


def test_cors_exposes_headers_without_credentials(client):
    env = invoke(client, "GET", "/health", headers={"Origin": "https://forms.example"})
    assert env["headers"]["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in env["headers"]
    exposed = {h.strip().lower() for h in env["headers"]["access-control-expose-headers"].split(",")}
    assert {"x-request-id", "content-disposition"} <= exposed


def test_health_reports_database(client):
    env = invoke(client, "GET", "/health")
    assert env["status"] == 200
    assert env["body"] == {"status": "ok", "db": True}


@pytest.mark.parametrize("path", ["/api/v1/does-not-exist", "/nothing-here"])
def test_unknown_routes_return_problem_json(client, path):
    env = invoke(client, "GET", path)
    assert env["status"] == 404
    assert env["content_type"].startswith(PROBLEM)
    assert env["body"]["code"] == "HTTP_404"
