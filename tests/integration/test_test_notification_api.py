from __future__ import annotations

from fastapi.testclient import TestClient

from notifier.api.deps import get_push_gateway, get_user_directory
from notifier.main import app
from notifier.notifications.contracts import StoreError
from notifier.schema.notifications import UserAccount


def test_test_notification_reports_message_and_recipient(gateway, user_directory_factory):
  users = user_directory_factory(recipient=UserAccount(id="u-1", role="student", fcm_token="device-1", name="Ada"))
  app.dependency_overrides[get_user_directory] = lambda: users
  app.dependency_overrides[get_push_gateway] = lambda: gateway
  client = TestClient(app)

  try:
    response = client.get("/test-notification")
    assert response.status_code == 200
    assert response.json() == {"success": True, "messageId": "projects/demo/messages/1", "sentTo": "Ada"}
    assert gateway.single_calls[0][1] == "device-1"

    # POST is accepted the same way.
    assert client.post("/test-notification").status_code == 200
  finally:
    app.dependency_overrides.clear()


def test_test_notification_without_student_returns_404(gateway, user_directory_factory):
  app.dependency_overrides[get_user_directory] = lambda: user_directory_factory(recipient=None)
  app.dependency_overrides[get_push_gateway] = lambda: gateway
  client = TestClient(app)

  try:
    response = client.get("/test-notification")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "No students with FCM tokens found"}
  finally:
    app.dependency_overrides.clear()


def test_test_notification_gateway_failure_returns_500(gateway, user_directory_factory):
  gateway.raise_for_tokens = {"device-1"}
  users = user_directory_factory(recipient=UserAccount(id="u-1", role="student", fcm_token="device-1", name="Ada"))
  app.dependency_overrides[get_user_directory] = lambda: users
  app.dependency_overrides[get_push_gateway] = lambda: gateway
  client = TestClient(app)

  try:
    response = client.get("/test-notification")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "gateway unavailable"}
  finally:
    app.dependency_overrides.clear()


def test_test_notification_store_unavailable_returns_structured_500(gateway):
  def _unavailable():
    raise StoreError("Firestore client is not available.")

  app.dependency_overrides[get_user_directory] = _unavailable
  app.dependency_overrides[get_push_gateway] = lambda: gateway
  client = TestClient(app)

  try:
    response = client.post("/test-notification")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Firestore client is not available."}
  finally:
    app.dependency_overrides.clear()
