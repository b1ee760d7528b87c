"""
Invitation use cases - inviting collaborators into a shared profile

Invitations use the same role vocabulary as memberships. Sending the
invitation e-mail is left to the delivery layer; the signup link is logged.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from envelope_budget.application.errors import NotFoundError, UserError, ConflictError
from envelope_budget.application.permissions import ensure_user_role
from envelope_budget.config import get_settings
from envelope_budget.domain.budget_profile import BudgetProfile as BudgetProfileEntity
from envelope_budget.domain.invitation import (
    Invitation as InvitationEntity, InvitationStatus,
    generate_token, compute_expiry, is_expired, emails_match, build_signup_link,
)
from envelope_budget.domain.roles import Role, ADMIN_OR_OWNER, ASSIGNABLE_ROLES
from envelope_budget.infrastructure.db.models import BudgetProfile, Invitation, User, UserBudgetProfile
from envelope_budget.infrastructure.eventlog.repository import EventLogRepository

logger = logging.getLogger(__name__)


class InvitationValidationError(UserError):
    pass


def list_pending_invitations(
    db: Session,
    user_id: int,
    budget_profile_id: int,
    now: datetime | None = None,
) -> list[Invitation]:
    """PENDING, not yet expired invitations of the profile, newest first (ADMIN+)"""
    ensure_user_role(db, user_id, budget_profile_id, ADMIN_OR_OWNER)
    now = now or datetime.now(timezone.utc)

    return db.query(Invitation).filter(
        Invitation.budget_profile_id == budget_profile_id,
        Invitation.status == InvitationStatus.PENDING,
        Invitation.expires_at >= now,
    ).order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()


class InviteUserUseCase:
    """
    Use case: invite someone by e-mail (ADMIN+)

    - e-mail of an existing user: they are added to the profile directly
    - unknown e-mail: a PENDING invitation with a signup token is created

    Returns the new membership or the new invitation.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        budget_profile_id: int,
        email: str,
        role: Role | str,
        now: datetime | None = None,
    ) -> UserBudgetProfile | Invitation:
        email = (email or "").strip()
        if not email or not role:
            raise InvitationValidationError("Email and role are required")
        if role == Role.OWNER:
            raise InvitationValidationError("Cannot invite a user with the OWNER role")
        try:
            role = Role(role)
        except ValueError:
            raise InvitationValidationError("Invalid role specified")
        if role not in ASSIGNABLE_ROLES:
            raise InvitationValidationError("Invalid role specified")

        ensure_user_role(self.db, user_id, budget_profile_id, ADMIN_OR_OWNER)

        profile = self.db.query(BudgetProfile).filter(BudgetProfile.id == budget_profile_id).first()
        if not profile:
            raise NotFoundError("Budget profile not found")
        owner = self.db.query(User).filter(User.id == profile.owner_id).first()
        if owner and emails_match(owner.email, email):
            raise InvitationValidationError("Cannot invite the profile owner")

        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            return self._add_existing_user(user_id, budget_profile_id, existing_user, role)

        return self._create_invitation(user_id, budget_profile_id, email, role, now)

    def _add_existing_user(
        self, user_id: int, budget_profile_id: int, user: User, role: Role
    ) -> UserBudgetProfile:
        existing_link = self.db.query(UserBudgetProfile).filter(
            UserBudgetProfile.user_id == user.id,
            UserBudgetProfile.budget_profile_id == budget_profile_id,
        ).first()
        if existing_link:
            raise ConflictError(f"User {user.email} is already a member of this budget profile")

        link = UserBudgetProfile(user_id=user.id, budget_profile_id=budget_profile_id, role=role)
        self.db.add(link)
        self.db.flush()

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="member_added",
            payload=BudgetProfileEntity.member_added(user.id, role.value),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info("Added existing user %s to profile %s as %s", user.email, budget_profile_id, role.value)
        return link

    def _create_invitation(
        self, user_id: int, budget_profile_id: int, email: str, role: Role, now: datetime | None
    ) -> Invitation:
        now = now or datetime.now(timezone.utc)
        pending = self.db.query(Invitation).filter(
            Invitation.email == email,
            Invitation.budget_profile_id == budget_profile_id,
            Invitation.status == InvitationStatus.PENDING,
        ).all()
        for stale in pending:
            if not is_expired(stale.expires_at, now):
                raise ConflictError(f"An invitation for {email} to this profile is already pending")
            # Lapsed invitations no longer block a new one
            stale.status = InvitationStatus.EXPIRED

        settings = get_settings()
        invitation = Invitation(
            email=email,
            budget_profile_id=budget_profile_id,
            role=role,
            token=generate_token(),
            status=InvitationStatus.PENDING,
            expires_at=compute_expiry(now, settings.INVITATION_TTL_DAYS),
            invited_by_user_id=user_id,
        )
        self.db.add(invitation)
        self.db.flush()

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="invitation_created",
            payload=InvitationEntity.created(invitation.id, email, role.value, invitation.expires_at),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info(
            "Created pending invitation for %s to profile %s, signup link: %s",
            email, budget_profile_id, build_signup_link(settings.WEB_CLIENT_URL, invitation.token),
        )
        return invitation


class RevokeInvitationUseCase:
    """Use case: withdraw a PENDING invitation (ADMIN+)"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, user_id: int, budget_profile_id: int, invitation_id: str) -> None:
        ensure_user_role(self.db, user_id, budget_profile_id, ADMIN_OR_OWNER)

        invitation = self.db.query(Invitation).filter(
            Invitation.id == invitation_id,
            Invitation.budget_profile_id == budget_profile_id,
        ).first()
        if not invitation:
            raise NotFoundError("Invitation not found")

        if invitation.status != InvitationStatus.PENDING:
            raise InvitationValidationError(
                f"Cannot revoke invitation with status {InvitationStatus(invitation.status).value}"
            )

        email = invitation.email
        self.db.delete(invitation)
        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="invitation_revoked",
            payload=InvitationEntity.revoked(invitation_id, email),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info("Revoked invitation %s for profile %s", invitation_id, budget_profile_id)


class AcceptInvitationUseCase:
    """
    Use case: accept an invitation right after signup

    Invoked by the signup flow with the new user and the token from the
    signup link. Marks the invitation ACCEPTED and creates the membership
    in one commit. An expired token is marked EXPIRED and rejected.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, user_id: int, token: str, now: datetime | None = None) -> UserBudgetProfile:
        now = now or datetime.now(timezone.utc)

        invitation = self.db.query(Invitation).filter(
            Invitation.token == token,
            Invitation.status == InvitationStatus.PENDING,
        ).first()
        if not invitation:
            raise InvitationValidationError("Invalid invitation token")

        if is_expired(invitation.expires_at, now):
            invitation.status = InvitationStatus.EXPIRED
            self.db.commit()
            raise InvitationValidationError("Invitation token has expired")

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        if not emails_match(invitation.email, user.email):
            raise InvitationValidationError("Invitation email does not match signup email")

        invitation.status = InvitationStatus.ACCEPTED
        invitation.accepted_by_user_id = user_id

        link = self.db.query(UserBudgetProfile).filter(
            UserBudgetProfile.user_id == user_id,
            UserBudgetProfile.budget_profile_id == invitation.budget_profile_id,
        ).first()
        created = link is None
        if created:
            link = UserBudgetProfile(
                user_id=user_id,
                budget_profile_id=invitation.budget_profile_id,
                role=invitation.role,
            )
            self.db.add(link)
        else:
            logger.warning(
                "User %s already linked to profile %s, invitation %s accepted without new membership",
                user_id, invitation.budget_profile_id, invitation.id,
            )
        self.db.flush()

        self.event_repo.append_event(
            budget_profile_id=invitation.budget_profile_id,
            event_type="invitation_accepted",
            payload=InvitationEntity.accepted(
                invitation.id, user_id, Role(invitation.role).value, created,
            ),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info("User %s joined profile %s via invitation %s", user_id, link.budget_profile_id, invitation.id)
        return link
