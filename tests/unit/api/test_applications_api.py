"""Tests for company-side application review endpoints."""

import pytest

from core.denormalization import new_application
from database.models import ApplicationStatus, Resume


@pytest.fixture
def seeded(db_session, make_user, make_company, make_job):
    """A company with one job and one applicant who attached a resume."""

    async def _seed():
        owner = await make_user()
        candidate = await make_user(email="candidate@example.com")
        company, _ = await make_company(owner)
        job = await make_job(company)
        resume = Resume(user_id=candidate.id, file_url="https://files.example.com/cv.pdf")
        db_session.add(resume)
        await db_session.commit()
        application = new_application(job, candidate.id, resume_id=resume.id)
        db_session.add(application)
        await db_session.commit()
        return owner, company, job, application

    return _seed


class TestListApplications:
    """Test the company application list."""

    @pytest.mark.asyncio
    async def test_list(self, client, seeded, auth_headers):
        owner, company, job, application = await seeded()

        response = await client.get(
            f"/v1/companies/{company.id}/applications",
            params={"job_id": job.id, "status": "APPLIED"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        item = data["items"][0]
        assert item["id"] == application.id
        assert item["candidate_email"] == "candidate@example.com"
        assert item["job_title"] == "Backend Engineer"
        assert item["resume_url"] == "https://files.example.com/cv.pdf"
        assert item["comment_count"] == 0

    @pytest.mark.asyncio
    async def test_other_company_sees_nothing(
        self, client, seeded, make_user, make_company, auth_headers
    ):
        await seeded()
        rival = await make_user()
        rival_company, _ = await make_company(rival, name="Rival Inc")

        response = await client.get(
            f"/v1/companies/{rival_company.id}/applications", headers=auth_headers(rival)
        )

        assert response.json()["total"] == 0


class TestReview:
    """Test review decisions and comments."""

    @pytest.mark.asyncio
    async def test_accept_then_reject(self, client, seeded, auth_headers):
        owner, company, _, application = await seeded()
        url = f"/v1/companies/{company.id}/applications/{application.id}/status"

        accepted = await client.patch(url, json={"status": "ACCEPTED"}, headers=auth_headers(owner))
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "ACCEPTED"
        assert accepted.json()["status_changed_by"] == owner.id

        rejected = await client.patch(url, json={"status": "REJECTED"}, headers=auth_headers(owner))
        assert rejected.json()["status"] == "REJECTED"

    @pytest.mark.asyncio
    async def test_company_cannot_set_withdrawn(self, client, seeded, auth_headers):
        owner, company, _, application = await seeded()

        response = await client.patch(
            f"/v1/companies/{company.id}/applications/{application.id}/status",
            json={"status": "WITHDRAWN"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_withdrawn_is_final(self, client, db_session, seeded, auth_headers):
        owner, company, _, application = await seeded()
        application.status = ApplicationStatus.WITHDRAWN
        await db_session.commit()

        response = await client.patch(
            f"/v1/companies/{company.id}/applications/{application.id}/status",
            json={"status": "ACCEPTED"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot update a withdrawn application"

    @pytest.mark.asyncio
    async def test_review_in_other_company(
        self, client, seeded, make_user, make_company, auth_headers
    ):
        _, _, _, application = await seeded()
        rival = await make_user()
        rival_company, _ = await make_company(rival, name="Rival Inc")

        response = await client.patch(
            f"/v1/companies/{rival_company.id}/applications/{application.id}/status",
            json={"status": "REJECTED"},
            headers=auth_headers(rival),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_comments(self, client, seeded, auth_headers):
        owner, company, _, application = await seeded()
        url = f"/v1/companies/{company.id}/applications/{application.id}/comments"

        created = await client.post(url, json={"comment": "Phone screen went well"}, headers=auth_headers(owner))
        assert created.status_code == 201
        assert created.json()["company_id"] == company.id
        assert created.json()["visible_to_candidate"] is False

        listed = await client.get(url, headers=auth_headers(owner))
        assert [c["comment"] for c in listed.json()] == ["Phone screen went well"]

        counted = await client.get(
            f"/v1/companies/{company.id}/applications", headers=auth_headers(owner)
        )
        assert counted.json()["items"][0]["comment_count"] == 1
