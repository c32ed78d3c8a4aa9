"""
API Services Layer.

Database operations behind the API routes. Every function takes the
request's AsyncSession; multi-row writes run through run_in_transaction.
"""

from api.services.auth import (
    register,
    login,
    get_user,
)

from api.services.companies import (
    create_company,
    list_my_companies,
    get_company,
    update_company,
    delete_company,
)

from api.services.members import (
    invite_member,
    list_members,
    change_role,
    revoke_member,
    transfer_ownership,
    list_my_memberships,
    accept_invitation,
)

from api.services.question_banks import (
    list_question_banks,
    get_question_bank,
    create_question_bank,
    update_question_bank,
    delete_question_bank,
)

from api.services.jobs import (
    auto_close_expired_jobs,
    create_job,
    list_jobs,
    get_job,
    update_job,
    change_job_status,
    delete_job,
    list_public_jobs,
    get_public_job,
)

from api.services.applications import (
    apply_to_job,
    list_my_applications,
    withdraw_application,
    list_company_applications,
    change_application_status,
    add_comment,
    list_comments,
)

from api.services.resumes import (
    create_resume,
    list_resumes,
    set_primary_resume,
    delete_resume,
)

from api.services.candidates import (
    create_profile,
    get_profile,
    update_profile,
)

__all__ = [
    # Auth
    "register",
    "login",
    "get_user",
    # Companies
    "create_company",
    "list_my_companies",
    "get_company",
    "update_company",
    "delete_company",
    # Members
    "invite_member",
    "list_members",
    "change_role",
    "revoke_member",
    "transfer_ownership",
    "list_my_memberships",
    "accept_invitation",
    # Question banks
    "list_question_banks",
    "get_question_bank",
    "create_question_bank",
    "update_question_bank",
    "delete_question_bank",
    # Jobs
    "auto_close_expired_jobs",
    "create_job",
    "list_jobs",
    "get_job",
    "update_job",
    "change_job_status",
    "delete_job",
    "list_public_jobs",
    "get_public_job",
    # Applications
    "apply_to_job",
    "list_my_applications",
    "withdraw_application",
    "list_company_applications",
    "change_application_status",
    "add_comment",
    "list_comments",
    # Resumes
    "create_resume",
    "list_resumes",
    "set_primary_resume",
    "delete_resume",
    # Profile
    "create_profile",
    "get_profile",
    "update_profile",
]
