# privilege_service/services/exceptions.py

class PrivilegeServiceError(Exception):
    """권한 서비스에서 발생하는 모든 예외의 기반 클래스"""
    pass

# --- General Exceptions ---
class NotFoundError(PrivilegeServiceError):
    """권한을 찾을 수 없을 때"""
    pass

class StorageError(PrivilegeServiceError):
    """데이터베이스 작업이 실패했을 때"""
    pass

# --- Creation/Validation Exceptions ---
class ValidationError(PrivilegeServiceError):
    """권한 의존 규칙이나 필수 필드 규칙을 위반했을 때"""
    pass

class ProtectedRecordError(PrivilegeServiceError):
    """default 또는 root 권한을 수정/삭제하려고 할 때"""
    pass

class AlreadyExistsError(PrivilegeServiceError):
    """default 또는 root 권한이 이미 존재하는데 다시 생성하려고 할 때"""
    pass

# --- Auth Exceptions ---
class AuthError(PrivilegeServiceError):
    """인가 게이트에서 요청을 거부할 때의 기반 클래스"""
    pass

class MissingCredentialError(AuthError):
    """토큰 헤더가 없거나 비어 있을 때"""
    pass

class ForbiddenError(AuthError):
    """토큰은 유효하지만 권한 관리 권한이 없을 때"""
    pass

class AuthorityUnavailableError(AuthError):
    """신원 인증 서비스에 연결할 수 없거나 오류를 반환했을 때"""
    pass
