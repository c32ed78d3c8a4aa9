"""
Tests for company and membership endpoints.

Tests:
- Company creation, visibility and soft deletion
- Invite and accept flow
- Role changes and last-owner protection
- Ownership transfer
- Access decision ordering
"""

import pytest
from sqlalchemy import select

from database.models import CompanyMember, CompanyRole, MemberStatus


async def member_status(db_session, member_id: int) -> MemberStatus:
    result = await db_session.execute(
        select(CompanyMember.status).where(CompanyMember.id == member_id)
    )
    return result.scalar_one()


async def member_role(db_session, member_id: int) -> CompanyRole:
    result = await db_session.execute(
        select(CompanyMember.role).where(CompanyMember.id == member_id)
    )
    return result.scalar_one()


async def active_owner_count(db_session, company_id: int) -> int:
    result = await db_session.execute(
        select(CompanyMember.id).where(
            CompanyMember.company_id == company_id,
            CompanyMember.role == CompanyRole.OWNER,
            CompanyMember.status == MemberStatus.ACTIVE,
        )
    )
    return len(result.scalars().all())


class TestCompanies:
    """Test company endpoints."""

    @pytest.mark.asyncio
    async def test_create_makes_creator_owner(self, client, make_user, auth_headers):
        user = await make_user()

        response = await client.post(
            "/v1/companies", json={"name": "Acme Corp"}, headers=auth_headers(user)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Acme Corp"
        assert data["membership"] == {
            "id": data["membership"]["id"],
            "role": "OWNER",
            "status": "ACTIVE",
        }

    @pytest.mark.asyncio
    async def test_list_mine(self, client, make_user, make_company, auth_headers):
        owner = await make_user()
        stranger = await make_user()
        await make_company(owner, name="Mine")
        await make_company(stranger, name="Theirs")

        response = await client.get("/v1/companies", headers=auth_headers(owner))

        assert [c["name"] for c in response.json()] == ["Mine"]
        assert response.json()[0]["role"] == "OWNER"

    @pytest.mark.asyncio
    async def test_non_member_cannot_read(self, client, make_user, make_company, auth_headers):
        owner = await make_user()
        stranger = await make_user()
        company, _ = await make_company(owner)

        response = await client.get(f"/v1/companies/{company.id}", headers=auth_headers(stranger))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "COMPANY_ACCESS_DENIED"

    @pytest.mark.asyncio
    async def test_admin_cannot_delete(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        admin = await make_user()
        company, _ = await make_company(owner)
        await make_membership(company, admin, role=CompanyRole.ADMIN)

        response = await client.delete(f"/v1/companies/{company.id}", headers=auth_headers(admin))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INSUFFICIENT_ROLE"

    @pytest.mark.asyncio
    async def test_deleted_company_disappears(self, client, make_user, make_company, auth_headers):
        owner = await make_user()
        company, _ = await make_company(owner)
        headers = auth_headers(owner)

        response = await client.delete(f"/v1/companies/{company.id}", headers=headers)
        assert response.status_code == 204

        assert (await client.get(f"/v1/companies/{company.id}", headers=headers)).status_code == 403
        assert (await client.get("/v1/companies", headers=headers)).json() == []

    @pytest.mark.asyncio
    async def test_update_ignores_null_name(self, client, make_user, make_company, auth_headers):
        owner = await make_user()
        company, _ = await make_company(owner)

        response = await client.patch(
            f"/v1/companies/{company.id}",
            json={"name": None, "website": "https://acme.example.com"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Acme Corp"
        assert response.json()["website"] == "https://acme.example.com"


class TestAccessOrdering:
    """Authentication failures are reported before authorization failures."""

    @pytest.mark.asyncio
    async def test_unauthenticated_before_forbidden(self, client, make_user, make_company):
        owner = await make_user()
        company, _ = await make_company(owner)

        response = await client.delete(f"/v1/companies/{company.id}")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_bad_token_before_forbidden(self, client, make_user, make_company):
        owner = await make_user()
        company, _ = await make_company(owner)

        response = await client.delete(
            f"/v1/companies/{company.id}", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_INVALID"

    @pytest.mark.asyncio
    async def test_inactive_user_rejected(self, client, make_user, make_company, auth_headers):
        owner = await make_user()
        company, _ = await make_company(owner)
        inactive = await make_user(is_active=False)

        response = await client.get(f"/v1/companies/{company.id}", headers=auth_headers(inactive))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "USER_INACTIVE"


class TestInvitations:
    """INVITED memberships grant nothing until accepted."""

    @pytest.mark.asyncio
    async def test_invite_and_accept(
        self, client, db_session, make_user, make_company, auth_headers
    ):
        owner = await make_user()
        invitee = await make_user(email="new.hire@example.com")
        company, _ = await make_company(owner)

        response = await client.post(
            f"/v1/companies/{company.id}/members",
            json={"email": "New.Hire@example.com", "role": "RECRUITER"},
            headers=auth_headers(owner),
        )
        assert response.status_code == 201
        member_id = response.json()["id"]
        assert response.json()["status"] == "INVITED"

        denied = await client.get(f"/v1/companies/{company.id}", headers=auth_headers(invitee))
        assert denied.status_code == 403

        mine = await client.get("/v1/memberships", headers=auth_headers(invitee))
        assert mine.json()[0]["company_name"] == "Acme Corp"
        assert mine.json()[0]["status"] == "INVITED"

        accepted = await client.post(
            f"/v1/memberships/{member_id}/accept", headers=auth_headers(invitee)
        )
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "ACTIVE"
        assert await member_status(db_session, member_id) == MemberStatus.ACTIVE

        allowed = await client.get(f"/v1/companies/{company.id}", headers=auth_headers(invitee))
        assert allowed.status_code == 200

    @pytest.mark.asyncio
    async def test_cannot_accept_someone_elses_invite(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        invitee = await make_user()
        other = await make_user()
        company, _ = await make_company(owner)
        invite = await make_membership(company, invitee, status=MemberStatus.INVITED)

        response = await client.post(
            f"/v1/memberships/{invite.id}/accept", headers=auth_headers(other)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_accept_twice(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        member = await make_user()
        company, _ = await make_company(owner)
        membership = await make_membership(company, member)

        response = await client.post(
            f"/v1/memberships/{membership.id}/accept", headers=auth_headers(member)
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

    @pytest.mark.asyncio
    async def test_invite_unknown_email(self, client, make_user, make_company, auth_headers):
        owner = await make_user()
        company, _ = await make_company(owner)

        response = await client.post(
            f"/v1/companies/{company.id}/members",
            json={"email": "ghost@example.com", "role": "ADMIN"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invite_existing_member(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        member = await make_user(email="member@example.com")
        company, _ = await make_company(owner)
        await make_membership(company, member, status=MemberStatus.REVOKED)

        response = await client.post(
            f"/v1/companies/{company.id}/members",
            json={"email": "member@example.com", "role": "ADMIN"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_recruiter_cannot_invite(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        recruiter = await make_user()
        await make_user(email="friend@example.com")
        company, _ = await make_company(owner)
        await make_membership(company, recruiter)

        response = await client.post(
            f"/v1/companies/{company.id}/members",
            json={"email": "friend@example.com", "role": "RECRUITER"},
            headers=auth_headers(recruiter),
        )

        assert response.status_code == 403


class TestOwnerProtection:
    """A company always keeps at least one ACTIVE OWNER."""

    @pytest.mark.asyncio
    async def test_revoke_sole_owner(self, client, db_session, make_user, make_company, auth_headers):
        owner = await make_user()
        company, membership = await make_company(owner)

        response = await client.delete(
            f"/v1/companies/{company.id}/members/{membership.id}", headers=auth_headers(owner)
        )

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Cannot revoke the last OWNER."
        assert await member_status(db_session, membership.id) == MemberStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_demote_sole_owner(self, client, db_session, make_user, make_company, auth_headers):
        owner = await make_user()
        company, membership = await make_company(owner)

        response = await client.patch(
            f"/v1/companies/{company.id}/members/{membership.id}/role",
            json={"role": "ADMIN"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 409
        assert await member_role(db_session, membership.id) == CompanyRole.OWNER

    @pytest.mark.asyncio
    async def test_revoke_one_of_two_owners(
        self, client, db_session, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        co_owner = await make_user()
        company, first = await make_company(owner)
        second = await make_membership(company, co_owner, role=CompanyRole.OWNER)
        headers = auth_headers(owner)
        members = f"/v1/companies/{company.id}/members"

        response = await client.delete(f"{members}/{second.id}", headers=headers)

        assert response.status_code == 200
        assert await member_status(db_session, second.id) == MemberStatus.REVOKED

        demoted = await client.patch(
            f"{members}/{first.id}/role", json={"role": "ADMIN"}, headers=headers
        )
        revoked = await client.delete(f"{members}/{first.id}", headers=headers)

        assert demoted.status_code == 409
        assert revoked.status_code == 409
        assert await active_owner_count(db_session, company.id) == 1

    @pytest.mark.asyncio
    async def test_admin_cannot_touch_owner(
        self, client, db_session, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        admin = await make_user()
        company, membership = await make_company(owner)
        await make_membership(company, admin, role=CompanyRole.ADMIN)

        response = await client.patch(
            f"/v1/companies/{company.id}/members/{membership.id}/role",
            json={"role": "RECRUITER"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 403
        assert await member_role(db_session, membership.id) == CompanyRole.OWNER

    @pytest.mark.asyncio
    async def test_admin_cannot_grant_owner(
        self, client, db_session, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        admin = await make_user()
        company, _ = await make_company(owner)
        admin_membership = await make_membership(company, admin, role=CompanyRole.ADMIN)

        response = await client.patch(
            f"/v1/companies/{company.id}/members/{admin_membership.id}/role",
            json={"role": "OWNER"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_revoked_member_role_is_frozen(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        former = await make_user()
        company, _ = await make_company(owner)
        revoked = await make_membership(company, former, status=MemberStatus.REVOKED)

        response = await client.patch(
            f"/v1/companies/{company.id}/members/{revoked.id}/role",
            json={"role": "ADMIN"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_member_of_other_company_not_found(
        self, client, make_user, make_company, auth_headers
    ):
        owner = await make_user()
        other_owner = await make_user()
        company, _ = await make_company(owner)
        _, foreign = await make_company(other_owner, name="Other Co")

        response = await client.delete(
            f"/v1/companies/{company.id}/members/{foreign.id}", headers=auth_headers(owner)
        )

        assert response.status_code == 404


class TestOwnershipTransfer:
    """Ownership moves atomically."""

    @pytest.mark.asyncio
    async def test_transfer(
        self, client, db_session, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        admin = await make_user()
        company, owner_membership = await make_company(owner)
        target = await make_membership(company, admin, role=CompanyRole.ADMIN)

        response = await client.post(
            f"/v1/companies/{company.id}/members/{target.id}/transfer-ownership",
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["previous_owner"]["role"] == "ADMIN"
        assert response.json()["new_owner"]["role"] == "OWNER"
        assert await member_role(db_session, owner_membership.id) == CompanyRole.ADMIN
        assert await member_role(db_session, target.id) == CompanyRole.OWNER

        # The former owner is now an ADMIN and cannot delete the company
        denied = await client.delete(f"/v1/companies/{company.id}", headers=auth_headers(owner))
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_cannot_transfer(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        admin = await make_user()
        company, owner_membership = await make_company(owner)
        await make_membership(company, admin, role=CompanyRole.ADMIN)

        response = await client.post(
            f"/v1/companies/{company.id}/members/{owner_membership.id}/transfer-ownership",
            headers=auth_headers(admin),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_transfer_to_invited(
        self, client, make_user, make_company, make_membership, auth_headers
    ):
        owner = await make_user()
        invitee = await make_user()
        company, _ = await make_company(owner)
        pending = await make_membership(company, invitee, status=MemberStatus.INVITED)

        response = await client.post(
            f"/v1/companies/{company.id}/members/{pending.id}/transfer-ownership",
            headers=auth_headers(owner),
        )

        assert response.status_code == 404
