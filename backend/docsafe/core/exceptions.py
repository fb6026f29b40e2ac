from typing import Optional

from fastapi import HTTPException, status


class DocSafeException(HTTPException):
    """HTTP error carrying an optional raw upstream message for `details`."""

    def __init__(self, status_code: int, detail: str, details: Optional[str] = None, headers=None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.details = details


class AuthenticationException(DocSafeException):
    def __init__(self, detail: str = "No autorizado"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDeniedException(DocSafeException):
    def __init__(self, detail: str = "Sin permisos suficientes"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ValidationException(DocSafeException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundException(DocSafeException):
    def __init__(self, detail: str = "Recurso no encontrado"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictException(DocSafeException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class DocumentsUnavailableException(DocSafeException):
    def __init__(self, details: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al obtener documentos",
            details=details,
        )


class StorageException(DocSafeException):
    def __init__(self, detail: str = "Error de almacenamiento", details: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            details=details,
        )


class IdentityProviderException(DocSafeException):
    def __init__(
        self,
        detail: str = "Error del proveedor de identidad",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        details: Optional[str] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, details=details)
