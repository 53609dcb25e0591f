"""
HTTP tests for the careers site and the admin dashboard.
"""

import pytest
from fastapi.testclient import TestClient

from bluework.core.applicant import EXPERIENCE_TABLE, TABLE
from bluework.core.job import TABLE as JOB_TABLE
from bluework.dashboard.app import HEALTH_PAYLOAD, create_app
from bluework.utils.config import Settings

from conftest import ADMIN_EMAIL


def application_form(**extra):
    data = {
        "action": "submit",
        "draft_id": "draft-1",
        "full_name": "Budi Santoso",
        "nick_name": "Budi",
        "address": "Jl. Merdeka No. 1",
        "date_of_birth": "1995-08-17",
        "phone_number": "081234567890",
        "email": "budi@example.com",
        "ktp_number": "3273000000000001",
        "last_education": "SMA",
        "applied_position": "Kurir",
        "expected_salary": "5000000",
        "domicile_city": "Bandung",
        "experience_count": "1",
        "expanded": "0",
        "experience-0-position": "Kurir",
        "experience-0-company_name": "Kilat Express",
        "experience-0-start_period": "2020-01",
        "experience-0-end_period": "2022-12",
    }
    data.update(extra)
    return data


@pytest.fixture
def seeded(fake_backend):
    query = fake_backend.query
    query.tables[JOB_TABLE] = [
        {"id": "1", "title": "Kurir", "company": "Kilat Express", "location": "Jakarta", "type": "Kontrak",
         "description": "", "is_active": True, "created_at": "2024-05-01T08:00:00+00:00"},
        {"id": "2", "title": "Operator Produksi", "company": "PT Maju", "location": "Bekasi", "type": "Full-time",
         "description": "Shift malam", "is_active": True, "created_at": "2024-05-02T08:00:00+00:00"},
        {"id": "3", "title": "Admin Gudang", "company": "PT Maju", "location": "Bandung", "type": "Full-time",
         "description": "", "is_active": False, "created_at": "2024-05-03T08:00:00+00:00"},
    ]
    query.tables[TABLE] = [
        {"id": "a1", "full_name": "Siti Aminah", "email": "siti@example.com", "phone_number": "0822",
         "domicile_city": "Jakarta", "applied_position": "Kurir", "ready_to_relocate": False,
         "applied_at": "2024-06-01T10:00:00+00:00", "photo_url": "", "cv_url": ""},
        {"id": "a2", "full_name": "Andi Wijaya", "email": "andi@example.com", "phone_number": "0833",
         "domicile_city": "Surabaya", "applied_position": "Operator Produksi", "ready_to_relocate": True,
         "applied_at": "2024-06-02T10:00:00+00:00", "photo_url": "", "cv_url": ""},
    ]
    query.tables[EXPERIENCE_TABLE] = [
        {"id": "e1", "application_id": "a2", "position": "Welder", "company_name": "PT Baja",
         "start_date": "2019-01-01", "end_date": None, "is_current_job": True},
    ]
    return fake_backend


class TestPublicPages:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == HEALTH_PAYLOAD

    def test_landing_lists_active_postings(self, client, seeded):
        response = client.get("/")
        assert response.status_code == 200
        assert "Kurir" in response.text
        assert "Operator Produksi" in response.text
        assert "Admin Gudang" not in response.text

    def test_landing_search(self, client, seeded):
        response = client.get("/", params={"q": "bekasi"})
        assert "Operator Produksi" in response.text
        assert "Kilat Express" not in response.text

    def test_jobs_api(self, client, seeded):
        response = client.get("/api/jobs", params={"q": "kurir"})
        assert [job["id"] for job in response.json()["jobs"]] == ["1"]

    def test_unknown_page_redirects_home(self, client):
        response = client.get("/lowongan/lama", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/"

    def test_unknown_api_path_is_404(self, client):
        assert client.get("/api/nope").status_code == 404

    def test_theme_toggle_sets_cookie(self, client):
        response = client.post("/theme", headers={"referer": "/apply"}, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/apply"
        assert "bw_theme=dark" in response.headers["set-cookie"]


class TestApplicationForm:

    def test_prefilled_position(self, client):
        response = client.get("/apply", params={"position": "Kurir"})
        assert response.status_code == 200
        assert 'name="applied_position" value="Kurir"' in response.text

    def test_add_experience_action(self, client, fake_backend):
        response = client.post("/apply", data=application_form(action="add"))
        assert response.status_code == 200
        assert 'name="experience-1-position"' in response.text
        assert 'name="experience_count" value="2"' in response.text
        assert fake_backend.query.calls == []

    def test_add_beyond_capacity_shows_message(self, client):
        data = application_form(action="add", experience_count="5")
        response = client.post("/apply", data=data)
        assert "Maksimal 5 pengalaman kerja." in response.text

    def test_age_is_derived_server_side(self, client):
        response = client.post("/apply", data=application_form(action="toggle:0", age="7"))
        assert 'name="age" value="7"' not in response.text

    def test_successful_submission(self, client, fake_backend):
        response = client.post(
            "/apply",
            data=application_form(),
            files={"cv": ("cv.pdf", b"%PDF-1.4 test", "application/pdf")},
        )
        assert response.status_code == 200
        assert "berhasil dikirim" in response.text
        assert 'http-equiv="refresh"' in response.text
        assert len(fake_backend.query.tables[TABLE]) == 1
        assert len(fake_backend.query.tables[EXPERIENCE_TABLE]) == 1
        assert fake_backend.storage.calls[0][1].startswith("cvs/")

    def test_oversized_photo_rejected_before_upload(self, client, fake_backend):
        response = client.post(
            "/apply",
            data=application_form(),
            files={"photo": ("me.jpg", b"x" * (200 * 1024 + 1), "image/jpeg")},
        )
        assert response.status_code == 422
        assert "Ukuran foto melebihi 200KB." in response.text
        assert fake_backend.storage.calls == []
        assert fake_backend.query.calls == []

    def test_missing_end_period_rejected(self, client, fake_backend):
        response = client.post("/apply", data=application_form(**{"experience-0-end_period": ""}))
        assert response.status_code == 422
        assert fake_backend.query.calls == []

    def test_experience_failure_rolls_back(self, client, fake_backend):
        fake_backend.query.fail("insert", EXPERIENCE_TABLE)
        response = client.post("/apply", data=application_form())
        assert response.status_code == 502
        assert "Gagal mengirim lamaran" in response.text
        assert fake_backend.query.tables[TABLE] == []

    def test_reentrant_submission_rejected(self, app, client, fake_backend):
        with app.state.guard.hold("draft-1"):
            response = client.post("/apply", data=application_form())
        assert response.status_code == 409
        assert fake_backend.query.calls == []


class TestAdmin:

    def test_dashboard_requires_login(self, client):
        response = client.get("/admin/dashboard", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/admin"

    def test_failed_login(self, client):
        response = client.post("/admin", data={"email": ADMIN_EMAIL, "password": "salah"})
        assert response.status_code == 401
        assert "Login gagal: Invalid login credentials" in response.text

    def test_login_page_redirects_when_signed_in(self, admin_client):
        response = admin_client.get("/admin", follow_redirects=False)
        assert response.headers["location"] == "/admin/dashboard"

    def test_dashboard_lists_and_filters(self, admin_client, seeded):
        response = admin_client.get("/admin/dashboard")
        assert response.status_code == 200
        assert "Siti Aminah" in response.text and "Andi Wijaya" in response.text
        assert "Welder di PT Baja (Jan 2019 - Saat Ini)" in response.text

        response = admin_client.get("/admin/dashboard", params={"q": "baja"})
        assert "Andi Wijaya" in response.text
        assert "Siti Aminah" not in response.text

        response = admin_client.get("/admin/dashboard", params={"position": "Kurir"})
        assert "Siti Aminah" in response.text
        assert "Andi Wijaya" not in response.text

    def test_csv_export(self, admin_client, seeded):
        response = admin_client.get("/admin/export/csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "daftar_pelamar_lengkap.csv" in response.headers["content-disposition"]
        text = response.content.decode("utf-8-sig")
        assert "Pengalaman Kerja 5 - Saat Ini" in text.splitlines()[0]
        assert "Welder" in text

    def test_pdf_export(self, admin_client, seeded):
        response = admin_client.get("/admin/export/pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_export_requires_login(self, client):
        response = client.get("/admin/export/csv", follow_redirects=False)
        assert response.status_code == 303

    def test_activity_log_requires_login(self, client):
        assert client.get("/api/activity").status_code == 403

    def test_logout(self, admin_client, fake_backend):
        response = admin_client.post("/admin/logout", follow_redirects=False)
        assert response.status_code == 303
        assert fake_backend.auth.signed_out
        admin_client.cookies.clear()
        response = admin_client.get("/admin/dashboard", follow_redirects=False)
        assert response.status_code == 303


class TestJobManagement:

    def test_create_posting(self, admin_client, fake_backend):
        response = admin_client.post("/admin/jobs", data={
            "title": "Satpam", "company": "PT Aman", "location": "Depok", "type": "Shift",
            "description": "", "is_active": "on",
        }, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"].startswith("/admin/jobs?msg=")
        rows = fake_backend.query.tables[JOB_TABLE]
        assert rows[0]["title"] == "Satpam"
        assert rows[0]["created_at"]

    def test_active_posting_validation(self, admin_client, fake_backend):
        response = admin_client.post("/admin/jobs", data={"title": "Satpam", "is_active": "on"})
        assert response.status_code == 422
        assert "wajib diisi" in response.text
        assert JOB_TABLE not in fake_backend.query.tables

    def test_edit_and_update_posting(self, admin_client, seeded):
        response = admin_client.get("/admin/jobs", params={"edit": "1"})
        assert "Perbarui Lowongan" in response.text

        admin_client.post("/admin/jobs", data={
            "posting_id": "1", "title": "Kurir Motor", "company": "Kilat Express", "location": "Jakarta",
            "type": "Kontrak", "is_active": "on",
        })
        row = seeded.query.tables[JOB_TABLE][0]
        assert row["title"] == "Kurir Motor"
        assert row["created_at"] == "2024-05-01T08:00:00+00:00"

    def test_admin_search_includes_description(self, admin_client, seeded):
        response = admin_client.get("/admin/jobs", params={"q": "malam"})
        assert "Operator Produksi" in response.text
        assert "Kilat Express" not in response.text

    def test_delete_posting(self, admin_client, seeded):
        response = admin_client.post("/admin/jobs/2/delete", follow_redirects=False)
        assert response.status_code == 303
        assert [row["id"] for row in seeded.query.tables[JOB_TABLE]] == ["1", "3"]


class TestMissingBackend:

    @pytest.fixture
    def unconfigured(self, tmp_path):
        settings = Settings(
            BACKEND="supabase",
            SUPABASE_URL="",
            SUPABASE_ANON_KEY="",
            logging={"file": str(tmp_path / "bluework.log")},
        )
        return TestClient(create_app(settings=settings))

    def test_health_still_answers(self, unconfigured):
        assert unconfigured.get("/api/health").json() == HEALTH_PAYLOAD

    def test_landing_shows_configuration_error(self, unconfigured):
        response = unconfigured.get("/")
        assert response.status_code == 200
        assert "Konfigurasi Supabase belum lengkap." in response.text

    def test_jobs_api_unavailable(self, unconfigured):
        assert unconfigured.get("/api/jobs").status_code == 503
