from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import quote
import logging

from fastapi import FastAPI, Request, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.datastructures import UploadFile

from bluework.backend import ApplicantRepository, Backend, JobPostingRepository, create_backend
from bluework.core.errors import (
    BlueWorkError,
    ConsistencyError,
    DependencyError,
    SubmissionInProgressError,
    ValidationError,
)
from bluework.core.filters import filter_applicants, filter_postings
from bluework.core.job import JobPosting
from bluework.core.applicant import EducationLevel
from bluework.dashboard.state import (
    SESSION_COOKIE,
    THEME_COOKIE,
    AuthState,
    ThemeState,
    log_auth_change,
)
from bluework.exports import (
    CSV_FILENAME,
    PDF_FILENAME,
    SUMMARY_COLUMNS,
    flattened_columns,
    flattened_rows,
    format_experiences,
    summary_rows,
    write_csv,
    write_pdf,
)
from bluework.forms.draft import FormDraft, UploadedFile
from bluework.forms.experience import MAX_EXPERIENCES
from bluework.forms.submission import ApplicationSubmitter, SubmissionGuard
from bluework.utils.config import Settings, get_settings
from bluework.utils.logger import configure_from_settings, memory_handler

logger = logging.getLogger(__name__)

DASHBOARD_DIR = Path(__file__).parent
templates = Jinja2Templates(directory=DASHBOARD_DIR / "templates")
templates.env.filters["experiences"] = format_experiences

HEALTH_PAYLOAD = {"status": "OK", "message": "Backend is healthy!"}
SESSION_MAX_AGE = 60 * 60 * 24 * 7


def _backend(request: Request) -> Backend:
    backend = request.app.state.backend
    if backend is None:
        raise DependencyError(request.app.state.config_error or "Konfigurasi Supabase belum lengkap.")
    return backend


def _render(request: Request, name: str, context: dict, status_code: int = 200) -> HTMLResponse:
    theme = ThemeState.from_cookie(request.cookies.get(THEME_COOKIE))
    return templates.TemplateResponse(
        request,
        name,
        {"theme": theme.theme, "message": None, "is_success": False, **context},
        status_code=status_code,
    )


async def _read_upload(value) -> Optional[UploadedFile]:
    if not isinstance(value, UploadFile) or not value.filename:
        return None
    content = await value.read()
    return UploadedFile(
        filename=value.filename,
        content=content,
        content_type=value.content_type or "application/octet-stream",
    )


async def _current_user(request: Request):
    """(backend scoped to the admin session, user) or (None, None) when signed out"""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None, None
    backend = _backend(request)
    state = AuthState(backend.auth)
    user = await state.restore(token)
    if user is None:
        return None, None
    return backend.for_session(token), user


def _login_redirect() -> RedirectResponse:
    return RedirectResponse("/admin", status_code=303)


def create_app(settings: Optional[Settings] = None, backend: Optional[Backend] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_from_settings(settings)

    config_error = None
    if backend is None:
        try:
            backend = create_backend(settings)
        except DependencyError as e:
            logger.error(f"❌ Backend unavailable: {e}")
            config_error = str(e)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 BlueWork careers site starting ({backend.name if backend else 'no backend'})")
        yield
        if backend is not None:
            await backend.aclose()

    app = FastAPI(title="BlueWork Careers", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.state.config_error = config_error
    app.state.guard = SubmissionGuard()

    app.mount("/static", StaticFiles(directory=DASHBOARD_DIR / "static"), name="static")
    if backend is not None and backend.name == "local":
        upload_dir = Path(backend.extras["upload_dir"])
        upload_dir.mkdir(parents=True, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    @app.exception_handler(DependencyError)
    async def dependency_error_handler(request: Request, exc: DependencyError):
        logger.error(f"❌ {request.method} {request.url.path}: {exc}")
        if request.url.path.startswith("/api/"):
            return JSONResponse({"detail": str(exc)}, status_code=502)
        return _render(request, "error.html", {"message": str(exc)}, status_code=502)

    def _query_or_503():
        if app.state.backend is None:
            raise HTTPException(status_code=503, detail=app.state.config_error or "Backend not configured")
        return app.state.backend.query

    # ============ API ============

    @app.get("/api/health")
    async def health():
        return HEALTH_PAYLOAD

    @app.get("/api/jobs")
    async def list_jobs(q: str = ""):
        try:
            postings = await JobPostingRepository(_query_or_503()).list_active()
        except DependencyError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"jobs": [p.model_dump(mode="json") for p in filter_postings(postings, q)]}

    @app.get("/api/activity")
    async def get_activity_log(request: Request, lines: int = 50):
        _, user = await _current_user(request)
        if user is None:
            raise HTTPException(status_code=403, detail="Admin access required")
        return {"logs": memory_handler.get_logs(lines)}

    # ============ Public pages ============

    @app.get("/", response_class=HTMLResponse)
    async def landing(request: Request, q: str = ""):
        postings, message = [], None
        try:
            postings = await JobPostingRepository(_backend(request).query).list_active()
        except DependencyError as e:
            message = f"Gagal memuat daftar lowongan: {e}"
        return _render(request, "landing.html", {
            "postings": filter_postings(postings, q),
            "query": q,
            "message": message,
        })

    def _render_form(request: Request, draft: FormDraft, message=None, is_success=False, status_code=200,
                     redirect_home=False):
        return _render(request, "apply.html", {
            "draft": draft,
            "education_levels": [level.value for level in EducationLevel],
            "max_experiences": MAX_EXPERIENCES,
            "photo_limit": settings.uploads.photo_max_bytes // 1024,
            "cv_limit": settings.uploads.cv_max_bytes // (1024 * 1024),
            "message": message,
            "is_success": is_success,
            "redirect_home": redirect_home,
        }, status_code=status_code)

    @app.get("/apply", response_class=HTMLResponse)
    async def application_form(request: Request, position: str = ""):
        return _render_form(request, FormDraft.blank(applied_position=position))

    @app.post("/apply", response_class=HTMLResponse)
    async def submit_application(request: Request):
        form = await request.form()
        photo = await _read_upload(form.get("photo"))
        cv = await _read_upload(form.get("cv"))
        draft = FormDraft.from_form(form, photo=photo, cv=cv)
        action = str(form.get("action") or "submit")

        if action != "submit":
            message = draft.apply_action(action)
            return _render_form(request, draft, message=message)

        try:
            submitter = ApplicationSubmitter(
                _backend(request).query,
                _backend(request).storage,
                settings.uploads,
                guard=app.state.guard,
            )
            result = await submitter.submit(draft)
        except ValidationError as e:
            return _render_form(request, draft, message=f"Gagal mengirim lamaran: {e}", status_code=422)
        except SubmissionInProgressError as e:
            return _render_form(request, draft, message=str(e), status_code=409)
        except ConsistencyError as e:
            return _render_form(request, draft, message=f"Gagal mengirim lamaran: {e}", status_code=502)
        except DependencyError as e:
            logger.error(f"❌ Application submission failed: {e}")
            return _render_form(request, draft, message=f"Gagal mengirim lamaran: {e}", status_code=502)

        logger.info(f"✅ Application {result.applicant_id} submitted with {result.experience_count} experience(s)")
        return _render_form(
            request,
            FormDraft.blank(applied_position=draft.applied_position),
            message=result.message,
            is_success=True,
            redirect_home=True,
        )

    @app.post("/theme")
    async def toggle_theme(request: Request):
        theme = ThemeState.from_cookie(request.cookies.get(THEME_COOKIE))
        theme.toggle()
        back = request.headers.get("referer") or "/"
        response = RedirectResponse(back, status_code=303)
        response.set_cookie(THEME_COOKIE, theme.theme, max_age=60 * 60 * 24 * 365, samesite="lax")
        return response

    # ============ Admin ============

    @app.get("/admin", response_class=HTMLResponse)
    async def admin_login_page(request: Request):
        try:
            _, user = await _current_user(request)
        except DependencyError as e:
            return _render(request, "admin_login.html", {"message": str(e), "email": ""})
        if user is not None:
            return RedirectResponse("/admin/dashboard", status_code=303)
        return _render(request, "admin_login.html", {"email": ""})

    @app.post("/admin", response_class=HTMLResponse)
    async def admin_login(request: Request):
        form = await request.form()
        email = str(form.get("email") or "")
        password = str(form.get("password") or "")
        try:
            state = AuthState(_backend(request).auth)
            state.on_change(log_auth_change)
            session = await state.sign_in(email, password)
        except DependencyError as e:
            return _render(request, "admin_login.html", {
                "message": f"Login gagal: {e}",
                "email": email,
            }, status_code=401)

        response = RedirectResponse("/admin/dashboard", status_code=303)
        response.set_cookie(
            SESSION_COOKIE,
            session.access_token,
            max_age=session.expires_in or SESSION_MAX_AGE,
            httponly=True,
            secure=settings.secure_cookies,
            samesite="lax",
        )
        return response

    @app.post("/admin/logout")
    async def admin_logout(request: Request):
        token = request.cookies.get(SESSION_COOKIE)
        response = _login_redirect()
        response.delete_cookie(SESSION_COOKIE)
        if not token or app.state.backend is None:
            return response
        state = AuthState(app.state.backend.auth)
        try:
            await state.restore(token)
            state.on_change(log_auth_change)
            await state.sign_out(token)
        except DependencyError as e:
            logger.warning(f"⚠️ Logout error: {e}")
        return response

    @app.get("/admin/dashboard", response_class=HTMLResponse)
    async def admin_dashboard(request: Request, q: str = "", position: str = ""):
        try:
            scoped, user = await _current_user(request)
        except DependencyError as e:
            return _render(request, "admin_login.html", {"message": str(e), "email": ""})
        if user is None:
            return _login_redirect()

        applicants, titles, message = [], [], None
        try:
            applicants = await ApplicantRepository(scoped.query).list_with_experiences()
        except DependencyError as e:
            message = f"Gagal memuat daftar pelamar: {e}"
        try:
            titles = await JobPostingRepository(scoped.query).titles()
        except DependencyError as e:
            logger.warning(f"⚠️ Failed to load job positions for filter: {e}")

        return _render(request, "admin_dashboard.html", {
            "user": user,
            "applicants": filter_applicants(applicants, q, position or None),
            "total": len(applicants),
            "titles": titles,
            "query": q,
            "position": position,
            "message": message,
        })

    @app.get("/admin/export/{fmt}")
    async def export_applicants(request: Request, fmt: str):
        if fmt not in ("csv", "pdf"):
            raise HTTPException(status_code=404, detail="Unknown export format")
        scoped, user = await _current_user(request)
        if user is None:
            return _login_redirect()
        try:
            applicants = await ApplicantRepository(scoped.query).list_with_experiences()
        except DependencyError as e:
            raise HTTPException(status_code=502, detail=f"Gagal memuat semua data pelamar untuk unduhan: {e}")

        if fmt == "csv":
            slots = settings.export.max_experience_slots
            body = write_csv(
                flattened_rows(applicants, slots=slots, placeholder=settings.export.placeholder),
                flattened_columns(slots),
            )
            media_type, filename = "text/csv; charset=utf-8", CSV_FILENAME
        else:
            body = write_pdf(summary_rows(applicants), SUMMARY_COLUMNS)
            media_type, filename = "application/pdf", PDF_FILENAME

        logger.info(f"📤 Exported {len(applicants)} applicant(s) as {fmt}")
        return Response(
            content=body,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    async def _render_jobs(request: Request, scoped: Backend, user, q: str = "", editing: Optional[JobPosting] = None,
                           message=None, is_success=False, status_code=200):
        postings = []
        try:
            postings = await JobPostingRepository(scoped.query).list_all()
        except DependencyError as e:
            message = message or f"Gagal memuat daftar lowongan: {e}"
        return _render(request, "admin_jobs.html", {
            "user": user,
            "postings": filter_postings(postings, q, admin=True),
            "query": q,
            "editing": editing or JobPosting(),
            "message": message,
            "is_success": is_success,
        }, status_code=status_code)

    @app.get("/admin/jobs", response_class=HTMLResponse)
    async def admin_jobs(request: Request, q: str = "", edit: Optional[str] = Query(None), msg: str = ""):
        scoped, user = await _current_user(request)
        if user is None:
            return _login_redirect()
        editing = None
        if edit:
            editing = await JobPostingRepository(scoped.query).get(edit)
        return await _render_jobs(request, scoped, user, q=q, editing=editing, message=msg or None, is_success=bool(msg))

    @app.post("/admin/jobs", response_class=HTMLResponse)
    async def save_job(request: Request):
        scoped, user = await _current_user(request)
        if user is None:
            return _login_redirect()
        form = await request.form()
        posting_id = str(form.get("posting_id") or "")
        posting = JobPosting(
            id=posting_id or None,
            title=str(form.get("title") or "").strip(),
            company=str(form.get("company") or "").strip(),
            location=str(form.get("location") or "").strip(),
            type=str(form.get("type") or "").strip(),
            description=str(form.get("description") or "").strip(),
            is_active=str(form.get("is_active", "")).lower() in ("on", "true", "1"),
        )
        repo = JobPostingRepository(scoped.query)
        try:
            if posting_id:
                await repo.update(posting_id, posting)
                notice = "Lowongan berhasil diperbarui!"
            else:
                await repo.create(posting)
                notice = "Lowongan pekerjaan berhasil ditambahkan!"
        except BlueWorkError as e:
            verb = "memperbarui" if posting_id else "menambahkan"
            status_code = 422 if isinstance(e, ValidationError) else 502
            return await _render_jobs(request, scoped, user, editing=posting, message=f"Gagal {verb} lowongan: {e}",
                                      status_code=status_code)
        return RedirectResponse(f"/admin/jobs?msg={quote(notice)}", status_code=303)

    @app.post("/admin/jobs/{posting_id}/delete")
    async def delete_job(request: Request, posting_id: str):
        scoped, user = await _current_user(request)
        if user is None:
            return _login_redirect()
        try:
            await JobPostingRepository(scoped.query).delete(posting_id)
        except DependencyError as e:
            return await _render_jobs(request, scoped, user, message=f"Gagal menghapus lowongan: {e}", status_code=502)
        return RedirectResponse(f"/admin/jobs?msg={quote('Lowongan berhasil dihapus!')}", status_code=303)

    # ============ Fallback ============

    @app.get("/{path:path}")
    async def fallback(path: str):
        if path.startswith("api/"):
            return JSONResponse({"detail": "Not Found"}, status_code=404)
        return RedirectResponse("/", status_code=307)

    return app


def run_dashboard(host: Optional[str] = None, port: Optional[int] = None):
    import uvicorn
    settings = get_settings()
    host = host or settings.server.host
    port = port or settings.server.port
    print(f"\n🚀 Starting BlueWork careers site at http://{host}:{port}\n")
    uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    run_dashboard()
