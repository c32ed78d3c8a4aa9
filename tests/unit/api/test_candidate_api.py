"""
Tests for candidate self-service endpoints.

Tests:
- Applying, duplicates and the uniqueness race
- Withdrawal rules
- Resume primary exclusivity and deletion
- Candidate profile
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from api.services import resumes as resume_service
from core import invariants
from core.denormalization import new_application
from core.exceptions import InvalidRequestError
from core.utils.datetime import now
from database.models import Application, ApplicationStatus, JobStatus, Resume


@pytest.fixture
def make_resume(db_session):
    async def _make(user, is_primary: bool = False, title: str = "CV") -> Resume:
        resume = Resume(
            user_id=user.id,
            title=title,
            file_url=f"https://files.example.com/{user.id}/{title}.pdf",
            is_primary=is_primary,
        )
        db_session.add(resume)
        await db_session.commit()
        return resume

    return _make


@pytest.fixture
def make_application(db_session):
    async def _make(job, user, status=ApplicationStatus.APPLIED, resume=None) -> Application:
        application = new_application(job, user.id, resume_id=resume.id if resume else None)
        application.status = status
        db_session.add(application)
        await db_session.commit()
        return application

    return _make


async def application_count(db_session) -> int:
    result = await db_session.execute(select(Application.id))
    return len(result.scalars().all())


class TestApply:
    """Test submitting applications."""

    @pytest.mark.asyncio
    async def test_apply(self, client, make_user, make_company, make_job, make_resume, auth_headers):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company)
        resume = await make_resume(candidate)

        response = await client.post(
            "/v1/candidate/applications",
            json={"job_id": job.id, "resume_id": resume.id, "answers_json": {"q1": 5}},
            headers=auth_headers(candidate),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "APPLIED"
        assert data["company_id"] == company.id
        assert data["answers_json"] == {"q1": 5}

    @pytest.mark.asyncio
    async def test_duplicate_apply(
        self, client, db_session, make_user, make_company, make_job, auth_headers
    ):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company)
        headers = auth_headers(candidate)

        first = await client.post("/v1/candidate/applications", json={"job_id": job.id}, headers=headers)
        second = await client.post("/v1/candidate/applications", json={"job_id": job.id}, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"]["message"] == "You have already applied to this job"
        assert await application_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_duplicate_caught_by_constraint(
        self, client, db_session, monkeypatch, make_user, make_company, make_job, auth_headers
    ):
        """A request that slips past the pre-check still gets a Conflict."""
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company)
        headers = auth_headers(candidate)
        await client.post("/v1/candidate/applications", json={"job_id": job.id}, headers=headers)

        async def no_existing_application(*args, **kwargs):
            return None

        monkeypatch.setattr(
            "api.services.applications.find_existing_application", no_existing_application
        )
        response = await client.post(
            "/v1/candidate/applications", json={"job_id": job.id}, headers=headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "You have already applied to this job"
        assert await application_count(db_session) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"status": JobStatus.DRAFT},
        {"status": JobStatus.CLOSED},
        {"deleted_at": now()},
    ])
    async def test_job_not_open(
        self, client, make_user, make_company, make_job, auth_headers, overrides
    ):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company, **overrides)

        response = await client.post(
            "/v1/candidate/applications", json={"job_id": job.id}, headers=auth_headers(candidate)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_deadline_passed(self, client, make_user, make_company, make_job, auth_headers):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company, application_deadline=now() - timedelta(seconds=1))

        response = await client.post(
            "/v1/candidate/applications", json={"job_id": job.id}, headers=auth_headers(candidate)
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Application deadline has passed"

    @pytest.mark.asyncio
    async def test_someone_elses_resume(
        self, client, make_user, make_company, make_job, make_resume, auth_headers
    ):
        owner = await make_user()
        candidate = await make_user()
        other = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company)
        foreign_resume = await make_resume(other)

        response = await client.post(
            "/v1/candidate/applications",
            json={"job_id": job.id, "resume_id": foreign_resume.id},
            headers=auth_headers(candidate),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client, make_user, make_company, make_job):
        owner = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company)

        response = await client.post("/v1/candidate/applications", json={"job_id": job.id})

        assert response.status_code == 401


class TestMyApplications:
    """Test the candidate's own application list."""

    @pytest.mark.asyncio
    async def test_only_visible_comments(
        self, client, make_user, make_company, make_job, make_application, auth_headers
    ):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        job = await make_job(company)
        application = await make_application(job, candidate)
        comments = f"/v1/companies/{company.id}/applications/{application.id}/comments"
        await client.post(
            comments,
            json={"comment": "Great portfolio", "visible_to_candidate": True},
            headers=auth_headers(owner),
        )
        await client.post(comments, json={"comment": "Salary too high"}, headers=auth_headers(owner))

        response = await client.get("/v1/candidate/applications", headers=auth_headers(candidate))

        data = response.json()
        assert len(data) == 1
        assert data[0]["job_title"] == "Backend Engineer"
        assert data[0]["company_name"] == "Acme Corp"
        assert [c["comment"] for c in data[0]["comments"]] == ["Great portfolio"]


class TestWithdraw:
    """Candidates may withdraw anything not yet accepted."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [ApplicationStatus.APPLIED, ApplicationStatus.REJECTED])
    async def test_withdraw(
        self, client, make_user, make_company, make_job, make_application, auth_headers, status
    ):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        application = await make_application(await make_job(company), candidate, status=status)

        response = await client.patch(
            f"/v1/candidate/applications/{application.id}/withdraw",
            headers=auth_headers(candidate),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "WITHDRAWN"

    @pytest.mark.asyncio
    async def test_cannot_withdraw_accepted(
        self, client, db_session, make_user, make_company, make_job, make_application, auth_headers
    ):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        application = await make_application(
            await make_job(company), candidate, status=ApplicationStatus.ACCEPTED
        )

        response = await client.patch(
            f"/v1/candidate/applications/{application.id}/withdraw",
            headers=auth_headers(candidate),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"
        result = await db_session.execute(
            select(Application.status).where(Application.id == application.id)
        )
        assert result.scalar_one() == ApplicationStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_cannot_withdraw_others(
        self, client, make_user, make_company, make_job, make_application, auth_headers
    ):
        owner = await make_user()
        candidate = await make_user()
        other = await make_user()
        company, _ = await make_company(owner)
        application = await make_application(await make_job(company), candidate)

        response = await client.patch(
            f"/v1/candidate/applications/{application.id}/withdraw",
            headers=auth_headers(other),
        )

        assert response.status_code == 404


class TestResumes:
    """At most one primary resume; deletion detaches applications."""

    @pytest.mark.asyncio
    async def test_first_resume_is_primary(self, client, make_user, auth_headers):
        candidate = await make_user()
        headers = auth_headers(candidate)

        first = await client.post(
            "/v1/candidate/resumes", json={"file_url": "https://files.example.com/a.pdf"}, headers=headers
        )
        second = await client.post(
            "/v1/candidate/resumes", json={"file_url": "https://files.example.com/b.pdf"}, headers=headers
        )

        assert first.json()["is_primary"] is True
        assert second.json()["is_primary"] is False

    @pytest.mark.asyncio
    async def test_primary_is_exclusive(self, client, db_session, make_user, auth_headers):
        candidate = await make_user()
        headers = auth_headers(candidate)
        ids = []
        for name in ("a", "b", "c"):
            response = await client.post(
                "/v1/candidate/resumes",
                json={"file_url": f"https://files.example.com/{name}.pdf", "is_primary": True},
                headers=headers,
            )
            ids.append(response.json()["id"])

        await client.patch(f"/v1/candidate/resumes/{ids[0]}/primary", headers=headers)

        result = await db_session.execute(
            select(Resume.id).where(Resume.user_id == candidate.id, Resume.is_primary.is_(True))
        )
        assert result.scalars().all() == [ids[0]]
        listed = await client.get("/v1/candidate/resumes", headers=headers)
        assert listed.json()[0]["id"] == ids[0]

    @pytest.mark.asyncio
    async def test_set_primary_on_foreign_resume(self, client, make_user, make_resume, auth_headers):
        candidate = await make_user()
        other = await make_user()
        resume = await make_resume(other)

        response = await client.patch(
            f"/v1/candidate/resumes/{resume.id}/primary", headers=auth_headers(candidate)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_detaches_applications(
        self,
        client,
        db_session,
        make_user,
        make_company,
        make_job,
        make_resume,
        make_application,
        auth_headers,
    ):
        owner = await make_user()
        candidate = await make_user()
        company, _ = await make_company(owner)
        resume = await make_resume(candidate)
        application = await make_application(await make_job(company), candidate, resume=resume)

        response = await client.delete(
            f"/v1/candidate/resumes/{resume.id}", headers=auth_headers(candidate)
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Resume deleted", "detached_applications": 1}
        result = await db_session.execute(
            select(Application.resume_id, Application.status).where(Application.id == application.id)
        )
        assert result.one() == (None, ApplicationStatus.APPLIED)

    @pytest.mark.asyncio
    async def test_deleting_primary_promotes_newest(
        self, client, db_session, make_user, make_resume, auth_headers
    ):
        candidate = await make_user()
        primary = await make_resume(candidate, is_primary=True, title="old")
        await make_resume(candidate, title="older")
        newest = await make_resume(candidate, title="new")

        await client.delete(f"/v1/candidate/resumes/{primary.id}", headers=auth_headers(candidate))

        result = await db_session.execute(
            select(Resume.id).where(Resume.user_id == candidate.id, Resume.is_primary.is_(True))
        )
        assert result.scalars().all() == [newest.id]

    @pytest.mark.asyncio
    async def test_quota(self, db_session, make_user, make_resume):
        candidate = await make_user()
        await make_resume(candidate)

        with pytest.raises(InvalidRequestError, match="Maximum of 1 resumes reached"):
            await resume_service.create_resume(
                db_session, candidate.id, "https://files.example.com/x.pdf", max_resumes=1
            )

    @pytest.mark.asyncio
    async def test_competing_first_resume_is_seen_after_lock(
        self, client, db_session, monkeypatch, make_user, auth_headers
    ):
        """A primary committed by another request while we waited on the user lock."""
        candidate = await make_user()
        lock_resume_owner = invariants.lock_resume_owner

        async def lock_after_competing_write(session, user_id):
            session.add(
                Resume(
                    user_id=user_id,
                    file_url="https://files.example.com/other.pdf",
                    is_primary=True,
                )
            )
            await session.flush()
            await lock_resume_owner(session, user_id)

        monkeypatch.setattr("core.invariants.lock_resume_owner", lock_after_competing_write)
        response = await client.post(
            "/v1/candidate/resumes",
            json={"file_url": "https://files.example.com/mine.pdf", "is_primary": False},
            headers=auth_headers(candidate),
        )

        assert response.status_code == 201
        assert response.json()["is_primary"] is False
        result = await db_session.execute(
            select(Resume.file_url).where(Resume.user_id == candidate.id, Resume.is_primary.is_(True))
        )
        assert result.scalars().all() == ["https://files.example.com/other.pdf"]

    @pytest.mark.asyncio
    async def test_primary_index_violation_is_conflict(
        self, client, db_session, monkeypatch, make_user, auth_headers
    ):
        candidate = await make_user()
        lock_user_resume_ids = invariants.lock_user_resume_ids

        async def primary_lands_after_scan(session, user_id):
            existing_ids = await lock_user_resume_ids(session, user_id)
            session.add(
                Resume(
                    user_id=user_id,
                    file_url="https://files.example.com/other.pdf",
                    is_primary=True,
                )
            )
            await session.flush()
            return existing_ids

        monkeypatch.setattr("api.services.resumes.lock_user_resume_ids", primary_lands_after_scan)
        response = await client.post(
            "/v1/candidate/resumes",
            json={"file_url": "https://files.example.com/mine.pdf", "is_primary": True},
            headers=auth_headers(candidate),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"
        assert response.json()["error"]["message"] == "Another primary resume was set at the same time"
        result = await db_session.execute(select(Resume.id).where(Resume.user_id == candidate.id))
        assert result.scalars().all() == []


class TestProfile:
    """Test the candidate profile."""

    @pytest.mark.asyncio
    async def test_create_get_update(self, client, make_user, auth_headers):
        candidate = await make_user()
        headers = auth_headers(candidate)

        created = await client.post(
            "/v1/candidate/profile", json={"full_name": "Jane Doe"}, headers=headers
        )
        assert created.status_code == 201

        updated = await client.patch(
            "/v1/candidate/profile", json={"bio": "Backend engineer"}, headers=headers
        )
        assert updated.json()["bio"] == "Backend engineer"
        assert updated.json()["full_name"] == "Jane Doe"

        fetched = await client.get("/v1/candidate/profile", headers=headers)
        assert fetched.json()["bio"] == "Backend engineer"

    @pytest.mark.asyncio
    async def test_profile_exists(self, client, make_user, auth_headers):
        candidate = await make_user()
        headers = auth_headers(candidate)
        await client.post("/v1/candidate/profile", json={"full_name": "Jane Doe"}, headers=headers)

        response = await client.post(
            "/v1/candidate/profile", json={"full_name": "Jane Again"}, headers=headers
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_missing_profile(self, client, make_user, auth_headers):
        candidate = await make_user()

        response = await client.get("/v1/candidate/profile", headers=auth_headers(candidate))

        assert response.status_code == 404
