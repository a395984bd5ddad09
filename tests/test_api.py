"""HTTP-level tests: routing, envelopes, status codes and guards."""

from datetime import date, timedelta


def _create_client(api_client, headers, **fields) -> dict:
    body = {"name": "Acme Holdings", "email": "ops@acme.example.com", "clientType": "business", **fields}
    response = api_client.post("/api/v1/clients", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealth:
    def test_health(self, api_client) -> None:
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["env"] == "test"

    def test_unknown_route_uses_error_envelope(self, api_client) -> None:
        response = api_client.get("/api/v1/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"error": {"code": "NOT_FOUND", "message": "Resource not found"}}


class TestClientsApi:
    """Client CRUD is tenant-scoped by the X-Organization-Id header."""

    def test_create_and_get(self, api_client, org_headers, org_id) -> None:
        created = _create_client(api_client, org_headers)

        assert created["organizationId"] == org_id
        assert created["clientType"] == "business"
        assert created["progress"] == 0

        fetched = api_client.get(f"/api/v1/clients/{created['id']}", headers=org_headers).json()["data"]
        assert fetched["name"] == "Acme Holdings"

    def test_list_is_paginated(self, api_client, org_headers) -> None:
        for n in range(3):
            _create_client(api_client, org_headers, name=f"Client {n}", email=None)

        body = api_client.get("/api/v1/clients?limit=2", headers=org_headers).json()

        assert len(body["data"]) == 2
        assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}

    def test_other_tenant_cannot_see_client(self, api_client, org_headers) -> None:
        created = _create_client(api_client, org_headers)

        response = api_client.get(
            f"/api/v1/clients/{created['id']}", headers={"X-Organization-Id": "another-org"}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_update_and_delete(self, api_client, org_headers) -> None:
        created = _create_client(api_client, org_headers)
        url = f"/api/v1/clients/{created['id']}"

        updated = api_client.put(url, json={"status": "inactive", "taxYear": 2024}, headers=org_headers)
        assert updated.json()["data"]["status"] == "inactive"
        assert updated.json()["data"]["taxYear"] == 2024

        assert api_client.delete(url, headers=org_headers).status_code == 204
        assert api_client.get(url, headers=org_headers).status_code == 404

    def test_invalid_body(self, api_client, org_headers) -> None:
        response = api_client.post("/api/v1/clients", json={"name": ""}, headers=org_headers)
        assert response.status_code == 422


class TestDocumentCollectionApi:
    def test_template_to_checklist(self, api_client, org_headers) -> None:
        client = _create_client(api_client, org_headers)
        template = api_client.post(
            "/api/v1/document-collection/templates",
            json={
                "name": "Business return",
                "category": "business",
                "taxYear": 2024,
                "items": [
                    {"id": "k1", "documentType": "K-1", "documentCategory": "Income", "title": "K-1s"},
                    {
                        "id": "payroll",
                        "documentType": "Payroll Report",
                        "documentCategory": "Business",
                        "title": "Payroll reports",
                        "conditionalLogic": [
                            {"condition": "hasEmployees", "operator": "equals", "value": True, "action": "show"}
                        ],
                    },
                ],
            },
            headers=org_headers,
        ).json()["data"]

        response = api_client.post(
            f"/api/v1/document-collection/clients/{client['id']}/checklist/from-template",
            json={"templateId": template["id"], "answers": {"hasEmployees": False}},
            headers=org_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert [i["documentType"] for i in data["checklist"]] == ["K-1"]
        assert data["progress"] == {"totalRequired": 1, "completed": 0, "percentage": 0}

        item_id = data["checklist"][0]["id"]
        completion = api_client.post(
            f"/api/v1/document-collection/clients/{client['id']}/items/completion",
            json={"itemId": item_id, "isCompleted": True},
            headers=org_headers,
        ).json()
        assert completion["success"] is True
        assert completion["data"]["progress"]["percentage"] == 100

    def test_send_reminder_requires_client(self, api_client, org_headers) -> None:
        response = api_client.post(
            "/api/v1/document-collection/alerts", json={"action": "send_reminder"}, headers=org_headers
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestUploadApi:
    """File-type and size checks happen before anything is stored."""

    def test_unsupported_type(self, api_client, org_headers) -> None:
        client = _create_client(api_client, org_headers)
        response = api_client.post(
            "/api/v1/documents/upload",
            files={"file": ("setup.exe", b"MZ", "application/x-msdownload")},
            data={"clientId": client["id"]},
            headers=org_headers,
        )
        assert response.status_code == 415
        assert "Unsupported file type" in response.json()["detail"]

    def test_empty_file(self, api_client, org_headers) -> None:
        client = _create_client(api_client, org_headers)
        response = api_client.post(
            "/api/v1/documents/upload",
            files={"file": ("w2.txt", b"", "text/plain")},
            data={"clientId": client["id"]},
            headers=org_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Uploaded file is empty."

    def test_upload_and_review(self, api_client, org_headers) -> None:
        client = _create_client(api_client, org_headers)
        api_client.put(
            f"/api/v1/document-collection/clients/{client['id']}/checklist",
            json={"items": [{"documentType": "W-2", "documentCategory": "Income", "title": "W-2"}]},
            headers=org_headers,
        )

        uploaded = api_client.post(
            "/api/v1/documents/upload",
            files={"file": ("w2.txt", b"Form W-2 Wage and Tax Statement", "text/plain")},
            data={"clientId": client["id"]},
            headers=org_headers,
        )
        assert uploaded.status_code == 201
        result = uploaded.json()["data"]
        assert result["classification"]["documentType"] == "W-2"
        assert result["matchedItemId"] is not None

        document_id = result["document"]["id"]
        reviewed = api_client.post(
            f"/api/v1/documents/{document_id}/review", json={"status": "approved"}, headers=org_headers
        )
        assert reviewed.json()["data"]["status"] == "approved"

        progress = api_client.get(
            f"/api/v1/document-collection/clients/{client['id']}/progress", headers=org_headers
        ).json()["data"]
        assert progress["overallProgress"] == 100

        dashboard = api_client.get(
            f"/api/v1/tracking/clients/{client['id']}/dashboard", headers=org_headers
        ).json()["data"]
        assert dashboard["summary"]["completedDocuments"] == 1


class TestCronGuards:
    """Scheduled sweeps require the shared cron secret."""

    CRON_PATHS = (
        "/api/v1/deadlines/cron/compliance-checks",
        "/api/v1/compliance/cron/daily-check",
        "/api/v1/invitations/cron/cleanup",
        "/api/v1/document-collection/cron/generate-alerts",
        "/api/v1/document-collection/cron/send-alerts",
    )

    def test_missing_secret_rejected(self, api_client, org_headers) -> None:
        for path in self.CRON_PATHS:
            response = api_client.post(path, headers=org_headers)
            assert response.status_code == 401, path
            assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_wrong_secret_rejected(self, api_client, org_headers) -> None:
        response = api_client.post(
            self.CRON_PATHS[0], headers={**org_headers, "X-Cron-Secret": "guess"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid cron secret"

    def test_sweeps_run_with_secret(self, api_client, cron_headers) -> None:
        for path in self.CRON_PATHS:
            assert api_client.post(path, headers=cron_headers).status_code == 200, path

    def test_compliance_checks_result(self, api_client, org_headers, cron_headers) -> None:
        api_client.post(
            "/api/v1/deadlines",
            json={"type": "quarterly", "formType": "1040-ES", "dueDate": (date.today() - timedelta(days=3)).isoformat()},
            headers=org_headers,
        )

        data = api_client.post(self.CRON_PATHS[0], headers=cron_headers).json()["data"]

        assert data["alertsCreated"] == 1
        assert data["remindersSent"] == 0


class TestInvitationsApi:
    def test_invite_lookup_accept(self, api_client, org_headers) -> None:
        sent = api_client.post(
            "/api/v1/invitations", json={"email": "new@example.com", "role": "agent"}, headers=org_headers
        )
        assert sent.status_code == 201
        token = sent.json()["data"]["invitationUrl"].split("token=")[1]

        looked_up = api_client.get(f"/api/v1/invitations/token/{token}")
        assert looked_up.json()["data"]["email"] == "new@example.com"

        accepted = api_client.post(
            "/api/v1/invitations/accept", json={"token": token, "password": "long-enough-pw"}
        )
        assert accepted.status_code == 201
        assert accepted.json()["data"]["role"] == "agent"

        assert api_client.get(f"/api/v1/invitations/token/{token}").status_code == 404


class TestVoiceApi:
    def test_voices_listed_without_key(self, api_client) -> None:
        response = api_client.get("/api/v1/voice/voices")
        assert response.status_code == 200
        assert len(response.json()["data"]) == 10

    def test_vapi_calls_unavailable_without_key(self, api_client) -> None:
        response = api_client.get("/api/v1/voice/assistants")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


class TestVapiWebhook:
    def test_status_update_acknowledged_and_logged(self, api_client, org_headers, org_id) -> None:
        response = api_client.post("/api/webhooks/vapi", json={"message": {
            "type": "status-update",
            "status": "in-progress",
            "call": {"id": "call_abc", "metadata": {"organizationId": org_id}},
        }})

        assert response.json() == {"received": True}
        logs = api_client.get("/api/v1/voice/call-logs", headers=org_headers).json()
        assert [log["vapiCallId"] for log in logs["data"]] == ["call_abc"]

    def test_tool_calls(self, api_client) -> None:
        response = api_client.post("/api/webhooks/vapi", json={"message": {
            "type": "tool-calls",
            "toolCallList": [{"id": "tc_1", "function": {"name": "transfer_to_human", "arguments": {}}}],
        }})

        assert response.status_code == 200
        assert response.json()["results"][0]["toolCallId"] == "tc_1"

    def test_garbage_payload_acknowledged(self, api_client) -> None:
        response = api_client.post("/api/webhooks/vapi", json={"unexpected": 1})
        assert response.json() == {"received": True}
