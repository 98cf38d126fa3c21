# tests/test_app.py
import io
import logging
import json
import pytest
from unittest.mock import MagicMock
from wsgiref.util import setup_testing_defaults

from privilege_service.app import create_application, handle_exception, request_metadata
from privilege_service.clients.interfaces import IIdentityAuthority
from privilege_service.database import models
from privilege_service.database.database import build_engine, build_session_factory
from privilege_service.database.db_init import initialize_db
from privilege_service.services.privilege_service import PrivilegeService
from privilege_service.services.exceptions import *

ADMIN_TOKEN = "admin-token"

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    factory = build_session_factory(engine)
    # users 테이블은 사용자 서비스 소유이므로 테스트에서 직접 만듭니다.
    models.User.__table__.create(bind=engine)
    initialize_db(engine, factory)
    yield factory
    engine.dispose()

@pytest.fixture
def mock_authority() -> MagicMock:
    """ADMIN_TOKEN에만 manage_privileges 권한을 주는 모의 인증 서비스를 생성합니다."""
    authority = MagicMock(spec=IIdentityAuthority)
    authority.validate_token.side_effect = lambda token: {"manage_privileges": token == ADMIN_TOKEN}
    return authority

@pytest.fixture
def app(session_factory, mock_authority):
    return create_application(session_factory, mock_authority)

def call(app, method, path, body=None, token=ADMIN_TOKEN):
    """WSGI 애플리케이션을 직접 호출하고 (상태 코드, JSON 본문)을 반환합니다."""
    environ = {}
    setup_testing_defaults(environ)
    raw = json.dumps(body).encode("utf-8") if body is not None else b""
    environ.update({
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "CONTENT_LENGTH": str(len(raw)),
        "wsgi.input": io.BytesIO(raw),
    })
    if token is not None:
        environ["HTTP_TOKEN"] = token

    captured = {}
    def start_response(status, headers):
        captured["status"] = status

    response = b"".join(app(environ, start_response))
    return int(captured["status"].split()[0]), json.loads(response)

# ===================================================================
#  라우팅 및 인가 테스트
# ===================================================================
class TestRouting:
    def test_ping_needs_no_token(self, app):
        assert call(app, "GET", "/v1/ping", token=None) == (200, {"status": "ok"})

    def test_unknown_route(self, app):
        status, body = call(app, "GET", "/v1/unknown")
        assert status == 404

    @pytest.mark.parametrize("method, path", [
        ("POST", "/v1/privileges"),
        ("GET", "/v1/privileges"),
        ("GET", "/v1/privileges/root"),
        ("GET", "/v1/privileges/default"),
        ("PUT", "/v1/privileges/some-id"),
        ("DELETE", "/v1/privileges/some-id"),
    ])
    def test_gated_routes_require_token(self, method, path, app, mock_authority):
        """토큰 없이 보호된 경로를 호출하면 401을 반환하는지 테스트합니다."""
        status, body = call(app, method, path, body={}, token=None)

        assert status == 401
        mock_authority.validate_token.assert_not_called()

    def test_token_without_manage_privileges_is_forbidden(self, app):
        status, body = call(app, "POST", "/v1/privileges", body={"name": "Support"}, token="user-token")
        assert status == 403

    def test_authority_unavailable(self, app, mock_authority):
        mock_authority.validate_token.side_effect = AuthorityUnavailableError("connection refused")

        status, body = call(app, "GET", "/v1/privileges")

        assert status == 503
        assert body == {"error": "connection refused"}

    @pytest.mark.parametrize("error, status, with_traceback", [
        (AuthorityUnavailableError("connection refused"), 503, False),
        (StorageError("database is locked"), 500, False),
        (RuntimeError("boom"), 500, True),
    ])
    def test_server_errors_are_logged(self, error, status, with_traceback, app, monkeypatch, caplog):
        """5xx 응답은 ERROR로 기록되고, 예상하지 못한 예외에만 traceback이 붙는지 테스트합니다."""
        # === Arrange ===
        def failing_get_all(self):
            raise error
        monkeypatch.setattr(PrivilegeService, "get_all", failing_get_all)
        caplog.set_level(logging.INFO, logger="privilege_service")

        # === Act ===
        result_status, body = call(app, "GET", "/v1/privileges")

        # === Assert ===
        assert result_status == status
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert str(error) in errors[0].getMessage()
        assert bool(errors[0].exc_info) is with_traceback

# ===================================================================
#  권한 관리 흐름 테스트
# ===================================================================
class TestPrivilegeFlow:
    def test_bootstrap_created_singletons(self, app):
        status, body = call(app, "GET", "/v1/privileges")

        assert status == 200
        assert sorted(p["name"] for p in body["privileges"]) == ["Default", "Root"]
        assert call(app, "GET", "/v1/privileges/root")[1]["privilege"]["is_root"] is True
        assert call(app, "GET", "/v1/privileges/default")[1]["privilege"]["is_default"] is True

    def test_create_get_update_delete(self, app, session_factory):
        """생성 -> 조회 -> 수정 -> 삭제 전체 흐름을 테스트합니다."""
        # 1. 생성 (서버가 관리하는 필드는 무시됨)
        status, body = call(app, "POST", "/v1/privileges", body={
            "id": "caller-id", "name": "Support", "view_all_users": True, "block_user": True, "is_root": True,
        })
        assert status == 201
        created = body["privilege"]
        assert created["id"] and created["id"] != "caller-id"
        assert created["is_root"] is False
        assert created["created_at"]

        # 2. 조회 (토큰 없이 허용)
        status, body = call(app, "GET", f"/v1/privileges/{created['id']}", token=None)
        assert status == 200
        assert body["privilege"]["block_user"] is True
        assert body["privilege"]["delete_user"] is False

        # 3. 수정
        status, body = call(app, "PUT", f"/v1/privileges/{created['id']}", body={
            "name": "Support L2", "view_all_users": True, "delete_user": True,
        })
        assert status == 200
        assert body["privilege"]["name"] == "Support L2"
        assert body["privilege"]["block_user"] is False

        # 4. 사용자 한 명을 연결한 뒤 삭제
        session = session_factory()
        session.add(models.User(id="user-1", privilege_id=created["id"]))
        session.commit()
        session.close()

        status, body = call(app, "DELETE", f"/v1/privileges/{created['id']}")
        assert status == 200
        assert body["reassigned_users"] == 1

        default_id = call(app, "GET", "/v1/privileges/default")[1]["privilege"]["id"]
        session = session_factory()
        assert session.query(models.User).one().privilege_id == default_id
        session.close()
        assert call(app, "GET", f"/v1/privileges/{created['id']}")[0] == 404

    def test_create_validation_error(self, app):
        status, body = call(app, "POST", "/v1/privileges", body={"name": "Broken", "delete_user": True})

        assert status == 400
        assert body == {"error": "Delete access not allowed without view access"}

    def test_create_rejects_non_boolean_flag(self, app):
        status, body = call(app, "POST", "/v1/privileges", body={"name": "Broken", "view_all_users": "yes"})
        assert status == 400

    def test_non_object_json_body(self, app):
        status, body = call(app, "POST", "/v1/privileges", body=["Support"])
        assert status == 400
        assert body == {"error": "JSON body must be an object."}

    def test_delete_root_is_conflict(self, app):
        root_id = call(app, "GET", "/v1/privileges/root")[1]["privilege"]["id"]

        status, body = call(app, "DELETE", f"/v1/privileges/{root_id}")

        assert status == 409
        assert call(app, "GET", f"/v1/privileges/{root_id}")[0] == 200

# ===================================================================
#  유틸리티 함수 테스트
# ===================================================================
def test_request_metadata_lowercases_headers():
    environ = {"HTTP_TOKEN": "abc", "HTTP_X_REQUEST_ID": "r1", "CONTENT_TYPE": "application/json"}
    assert request_metadata(environ) == {"token": "abc", "x-request-id": "r1"}

@pytest.mark.parametrize("error, status", [
    (ValidationError("bad"), "400 Bad Request"),
    (MissingCredentialError("no token"), "401 Unauthorized"),
    (ForbiddenError("no"), "403 Forbidden"),
    (NotFoundError("missing"), "404 Not Found"),
    (ProtectedRecordError("root"), "409 Conflict"),
    (AlreadyExistsError("exists"), "409 Conflict"),
    (AuthorityUnavailableError("down"), "503 Service Unavailable"),
    (StorageError("db"), "500 Internal Server Error"),
    (RuntimeError("boom"), "500 Internal Server Error"),
])
def test_handle_exception_maps_status(error, status):
    result_status, body = handle_exception(error)
    assert result_status == status
    assert json.loads(body) == {"error": str(error)}
