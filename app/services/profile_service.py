from app.extensions import db
from app.models import Profile
import logging

logger = logging.getLogger(__name__)


def _default_full_name(user):
    metadata = user.get('user_metadata') or {}
    if metadata.get('full_name'):
        return metadata['full_name']
    email = user.get('email') or ''
    return email.split('@')[0] if email else None


class ProfileService:
    """Reads the admin flag of a user, creating the profile on first login.

    Provisioning is read-then-write without a transaction: two first logins
    racing on an empty table can both see a count of zero and both become
    admin. Move the bootstrap to a one-off migration if that matters.
    """

    def get_profile(self, user_id):
        return db.session.get(Profile, user_id)

    def provision(self, user):
        total = Profile.query.count()
        is_first_user = total == 0
        logger.info(
            "Creating profile for %s (existing profiles: %s)%s",
            user['id'],
            total,
            ' - first user becomes admin' if is_first_user else '',
        )

        metadata = user.get('user_metadata') or {}
        profile = Profile(
            id=user['id'],
            email=user.get('email'),
            full_name=_default_full_name(user),
            avatar_url=metadata.get('avatar_url'),
            is_admin=is_first_user,
        )
        db.session.add(profile)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return profile

    def resolve_admin(self, user):
        profile = self.get_profile(user['id'])
        if profile is None:
            profile = self.provision(user)
        return bool(profile.is_admin)
