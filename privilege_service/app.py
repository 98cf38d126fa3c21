# privilege_service/app.py
from wsgiref.simple_server import make_server
import json
import sys
import re

from privilege_service import config
from privilege_service.clients import HttpIdentityAuthority
from privilege_service.database import models
from privilege_service.database.database import build_engine, build_session_factory
from privilege_service.database.db_init import initialize_db
from privilege_service.repositories.sqlalchemy import SqlalchemyPrivilegeRepository, SqlalchemyUserRepository
from privilege_service.services.authorization_service import AuthorizationService
from privilege_service.services.privilege_service import PrivilegeService
from privilege_service.services.exceptions import (
    AlreadyExistsError,
    AuthorityUnavailableError,
    ForbiddenError,
    MissingCredentialError,
    NotFoundError,
    ProtectedRecordError,
    StorageError,
    ValidationError,
)
from privilege_service.utils import configure_logging, get_logger

log = get_logger(__name__)

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        data = json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object.")
    return data

def request_metadata(environ):
    """WSGI environ의 HTTP_* 항목을 소문자 헤더 이름의 딕셔너리로 변환합니다. (HTTP_TOKEN -> 'token')"""
    return {
        key[5:].lower().replace("_", "-"): value
        for key, value in environ.items()
        if key.startswith("HTTP_")
    }

def authorize(environ):
    return environ['services']['authorization'].authorize(request_metadata(environ))

def privilege_from_request(data, privilege_id=None):
    """요청 본문에서 이름과 권한 플래그만 꺼내 Privilege 객체를 만듭니다. 서버가 관리하는 필드는 무시합니다."""
    name = data.get("name")
    if name is not None and not isinstance(name, str):
        raise ValueError("Field 'name' must be a string.")

    privilege = models.Privilege(id=privilege_id, name=name)
    for flag in models.CAPABILITY_FLAGS:
        value = data.get(flag, False)
        if not isinstance(value, bool):
            raise ValueError(f"Field '{flag}' must be a boolean.")
        setattr(privilege, flag, value)
    return privilege

def privilege_to_dict(privilege):
    data = {"id": privilege.id, "name": privilege.name}
    for flag in models.CAPABILITY_FLAGS:
        data[flag] = bool(getattr(privilege, flag))
    data["is_default"] = bool(privilege.is_default)
    data["is_root"] = bool(privilege.is_root)
    data["created_at"] = privilege.created_at.isoformat() if privilege.created_at else None
    data["updated_at"] = privilege.updated_at.isoformat() if privilege.updated_at else None
    return data

def handle_exception(e):
    error_map = {
        MissingCredentialError: "401 Unauthorized",
        ForbiddenError: "403 Forbidden",
        NotFoundError: "404 Not Found",
        ValidationError: "400 Bad Request",
        ValueError: "400 Bad Request",
        ProtectedRecordError: "409 Conflict",
        AlreadyExistsError: "409 Conflict",
        AuthorityUnavailableError: "503 Service Unavailable",
        StorageError: "500 Internal Server Error",
    }
    status = error_map.get(type(e), "500 Internal Server Error")
    return status, json.dumps({"error": str(e)})

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

ID_PATTERN = r'([a-zA-Z0-9_-]+)'

def create_application(session_factory, identity_authority):
    """
    요청마다 DB 세션과 서비스를 생성하는 WSGI 애플리케이션을 반환합니다.

    Args:
        session_factory: SQLAlchemy 세션 팩토리.
        identity_authority: 토큰 검증에 사용할 신원 인증 서비스 클라이언트. 모든 요청이 공유합니다.
    """
    authorization_service = AuthorizationService(identity_authority)

    routes = [
        ('GET', r'^/v1/ping$', ping_handler),
        ('POST', r'^/v1/privileges$', create_privilege_handler),
        ('GET', r'^/v1/privileges$', list_privileges_handler),
        ('GET', r'^/v1/privileges/root$', get_root_privilege_handler),
        ('GET', r'^/v1/privileges/default$', get_default_privilege_handler),
        ('GET', rf'^/v1/privileges/{ID_PATTERN}$', get_privilege_handler),
        ('PUT', rf'^/v1/privileges/{ID_PATTERN}$', update_privilege_handler),
        ('DELETE', rf'^/v1/privileges/{ID_PATTERN}$', delete_privilege_handler),
    ]

    def application(environ, start_response):
        db_session = session_factory()
        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "")
        try:
            # 1. 의존성 생성 (Repositories -> Services)
            privilege_repo = SqlalchemyPrivilegeRepository(db_session)
            user_repo = SqlalchemyUserRepository(db_session)

            environ['services'] = {
                'privilege': PrivilegeService(privilege_repo, user_repo),
                'authorization': authorization_service,
            }

            # 2. 라우팅 및 핸들러 실행
            handler, path_args = None, []
            for route_method, pattern, route_handler in routes:
                if method == route_method and (match := re.match(pattern, path)):
                    handler, path_args = route_handler, match.groups()
                    break

            if handler:
                status, response_body = handler(environ, *path_args)
            else:
                status, response_body = '404 Not Found', json.dumps({'error': 'Not Found'})

        except Exception as e:
            status, response_body = handle_exception(e)
            if status.startswith("5"):
                # 예상된 장애는 traceback 없이 기록
                exc_info = not isinstance(e, (StorageError, AuthorityUnavailableError))
                log.error("%s %s failed: %s", method, path, e, exc_info=exc_info)
            else:
                log.warning("%s %s rejected (%s): %s", method, path, status, e)
        finally:
            db_session.close()

        start_response(status, [("Content-Type", "application/json")])
        return [response_body.encode("utf-8")]

    return application

# --------------------------------------------------------------------------
## 핸들러 함수
# --------------------------------------------------------------------------

def ping_handler(environ, *args):
    return '200 OK', json.dumps({"status": "ok"})

def create_privilege_handler(environ, *args):
    authorize(environ)
    data = get_request_data(environ)
    privilege = environ['services']['privilege'].create(privilege_from_request(data))
    return '201 Created', json.dumps({"privilege": privilege_to_dict(privilege)})

def list_privileges_handler(environ, *args):
    authorize(environ)
    privileges = environ['services']['privilege'].get_all()
    return '200 OK', json.dumps({"privileges": [privilege_to_dict(p) for p in privileges]})

def get_root_privilege_handler(environ, *args):
    authorize(environ)
    privilege = environ['services']['privilege'].get_root()
    return '200 OK', json.dumps({"privilege": privilege_to_dict(privilege)})

def get_default_privilege_handler(environ, *args):
    authorize(environ)
    privilege = environ['services']['privilege'].get_default()
    return '200 OK', json.dumps({"privilege": privilege_to_dict(privilege)})

def get_privilege_handler(environ, privilege_id):
    # 다른 서비스가 사용자의 권한을 조회하는 경로이므로 토큰 없이 허용
    privilege = environ['services']['privilege'].get(privilege_id)
    return '200 OK', json.dumps({"privilege": privilege_to_dict(privilege)})

def update_privilege_handler(environ, privilege_id):
    authorize(environ)
    data = get_request_data(environ)
    privilege = environ['services']['privilege'].update(privilege_from_request(data, privilege_id))
    return '200 OK', json.dumps({"privilege": privilege_to_dict(privilege)})

def delete_privilege_handler(environ, privilege_id):
    authorize(environ)
    reassigned = environ['services']['privilege'].delete(privilege_id)
    return '200 OK', json.dumps({
        "message": f"Privilege '{privilege_id}' deleted.",
        "reassigned_users": reassigned,
    })

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

def main():
    # 설정 오류도 기록할 수 있도록 기본 레벨로 먼저 설치합니다.
    configure_logging()
    try:
        config.check_required_settings()
        configure_logging(config.log_level())
        port = int(config.SERVICE_PORT)
        timeout = config.identity_service_timeout()
    except (config.ConfigError, ValueError) as e:
        log.error("Invalid configuration: %s", e)
        sys.exit(1)

    engine = build_engine(config.SQLALCHEMY_DATABASE_URL)
    session_factory = build_session_factory(engine)
    initialize_db(engine, session_factory)

    identity_authority = HttpIdentityAuthority(config.IDENTITY_SERVICE_URL, timeout)
    try:
        identity_authority.ping()
    except AuthorityUnavailableError as e:
        log.warning("Identity service is not reachable yet: %s", e)

    try:
        with make_server("", port, create_application(session_factory, identity_authority)) as httpd:
            log.info("Serving privilege service on port %d...", port)
            httpd.serve_forever()
    finally:
        identity_authority.close()
        engine.dispose()

if __name__ == "__main__":
    main()
