from app.extensions import db
from app.models import Profile
from app.services.profile_service import ProfileService


def test_first_profile_becomes_admin(app):
    with app.app_context():
        service = ProfileService()
        first = {
            'id': 'u-first',
            'email': 'owner@example.com',
            'user_metadata': {'full_name': 'Shop Owner'},
        }
        second = {'id': 'u-second', 'email': 'priya@example.com'}

        assert service.resolve_admin(first) is True
        assert service.resolve_admin(second) is False

        owner = db.session.get(Profile, 'u-first')
        assert owner.full_name == 'Shop Owner'
        assert owner.is_admin is True


def test_full_name_falls_back_to_email_local_part(app):
    with app.app_context():
        profile = ProfileService().provision({
            'id': 'u1',
            'email': 'priya.sharma@example.com',
            'user_metadata': {'avatar_url': 'https://example.com/a.png'},
        })
        assert profile.full_name == 'priya.sharma'
        assert profile.avatar_url == 'https://example.com/a.png'


def test_existing_profile_flag_is_returned(app):
    with app.app_context():
        db.session.add(Profile(id='u-existing', email='a@example.com'))
        db.session.commit()

        service = ProfileService()
        assert service.resolve_admin({'id': 'u-existing'}) is False

        profile = db.session.get(Profile, 'u-existing')
        profile.is_admin = True
        db.session.commit()
        assert service.resolve_admin({'id': 'u-existing'}) is True
        assert Profile.query.count() == 1
