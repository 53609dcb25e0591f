"""
Backend collaborators package
"""

from bluework.backend.base import AuthClient, AuthSession, Backend, QueryClient, StorageClient, User
from bluework.backend.repository import ApplicantRepository, JobPostingRepository


def create_backend(settings) -> Backend:
    """Build the backend selected by ``settings.backend``"""
    if settings.backend == "local":
        from bluework.backend.local import create_local_backend
        return create_local_backend(
            db_path=settings.database.path,
            upload_dir=settings.uploads.local_dir,
            admin_email=settings.admin_email,
            admin_password=settings.admin_password,
            echo=settings.database.echo,
        )

    from bluework.backend.supabase_rest import create_supabase_backend
    return create_supabase_backend(settings.supabase_url, settings.supabase_anon_key)


__all__ = [
    "AuthClient",
    "AuthSession",
    "Backend",
    "QueryClient",
    "StorageClient",
    "User",
    "ApplicantRepository",
    "JobPostingRepository",
    "create_backend",
]
