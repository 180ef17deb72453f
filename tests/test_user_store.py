"""
tests/test_user_store.py -- Unit tests for auth/store.py (UserStore).

Covers:
  - register(): public projection, hashing, generated avatar
  - Conflicts on email/username/phone/ktu_id from the pre-check AND from the
    UNIQUE constraint when the pre-check is bypassed (race backstop)
  - Faculty accounts (NULL ktu_id) never collide with each other
  - update_profile(): partial updates, conflict against other records only,
    social link merge
  - change_password(): wrong current password leaves the hash untouched
"""

import pytest

from auth.models import (
    AlumniProfile,
    Department,
    FacultyProfile,
    ProfilePatch,
    Role,
    SignupCandidate,
    StudentProfile,
)
from auth.passwords import verify_password
from auth.store import UserStore
from core.errors import ConflictError, ForbiddenError, NotFoundError


@pytest.fixture
def store(fresh_engine):
    return UserStore(fresh_engine)


def _candidate(**overrides) -> SignupCandidate:
    fields = {
        "fullname": "Jane Doe",
        "email": "jane@gecidukki.ac.in",
        "password": "Abcde1",
        "username": "jane",
        "department": Department.CSE,
        "phone": "+919876543210",
        "profile": StudentProfile(ktu_id="IDK1234"),
    }
    fields.update(overrides)
    return SignupCandidate(**fields)


class TestRegister:
    def test_returns_stored_user(self, store):
        user = store.register(_candidate())
        assert user.id is not None
        assert user.role is Role.STUDENT
        assert user.created_at
        assert user.profile_img.startswith("https://api.dicebear.com/")
        assert user.hashed_password != "Abcde1"
        assert verify_password("Abcde1", user.hashed_password)

    def test_projection_never_carries_hash(self, store):
        projection = store.register(_candidate()).public_projection()
        assert "hashed_password" not in projection
        assert "password" not in projection
        assert projection["ktu_id"] == "IDK1234"
        assert projection["passout_year"] is None

    def test_lookups_are_exact(self, store):
        store.register(_candidate())
        assert store.get_by_email("jane@gecidukki.ac.in").username == "jane"
        assert store.get_by_email("JANE@gecidukki.ac.in") is None
        assert store.get_by_username("jane").email == "jane@gecidukki.ac.in"
        assert store.get_by_username("Jane") is None
        assert store.get_by_id(999) is None

    @pytest.mark.parametrize(
        "field, overrides",
        [
            ("email", {"username": "other", "phone": "+919000000001", "profile": StudentProfile(ktu_id="IDK9")}),
            ("username", {"email": "o@gecidukki.ac.in", "phone": "+919000000001", "profile": StudentProfile(ktu_id="IDK9")}),
            ("phone", {"email": "o@gecidukki.ac.in", "username": "other", "profile": StudentProfile(ktu_id="IDK9")}),
            ("ktu_id", {"email": "o@gecidukki.ac.in", "username": "other", "phone": "+919000000001"}),
        ],
    )  # fmt: skip
    def test_duplicate_field_conflicts(self, store, field, overrides):
        store.register(_candidate())
        with pytest.raises(ConflictError) as exc_info:
            store.register(_candidate(**overrides))
        assert exc_info.value.field == field

    def test_first_colliding_field_is_named(self, store):
        store.register(_candidate())
        with pytest.raises(ConflictError) as exc_info:
            store.register(_candidate(username="other"))
        assert exc_info.value.field == "email"
        assert exc_info.value.message == "Email already registered"

    def test_unique_constraint_backstops_a_lost_race(self, store, monkeypatch):
        """Two requests can both pass the pre-check; the insert must still fail with the same error."""
        store.register(_candidate())
        monkeypatch.setattr(store, "_find_owner", lambda values, exclude_id=None: None)
        with pytest.raises(ConflictError) as exc_info:
            store.register(_candidate(username="other", phone="+919000000001", profile=StudentProfile(ktu_id="IDK9")))
        assert exc_info.value.field == "email"

    def test_generated_username_takes_a_free_variant(self, store):
        store.register(_candidate())
        second = store.register(
            _candidate(
                email="o@gecidukki.ac.in",
                phone="+919000000001",
                profile=StudentProfile(ktu_id="IDK9"),
                username_generated=True,
            )
        )
        assert second.username == "jane2"
        third = store.register(
            _candidate(
                email="p@gecidukki.ac.in",
                phone="+919000000002",
                profile=StudentProfile(ktu_id="IDK10"),
                username_generated=True,
            )
        )
        assert third.username == "jane3"

    def test_faculty_without_ktu_id_do_not_collide(self, store):
        store.register(_candidate(profile=FacultyProfile()))
        second = store.register(
            _candidate(email="b@gecidukki.ac.in", username="b", phone="+919000000002", profile=FacultyProfile())
        )
        assert second.role is Role.FACULTY

    def test_alumni_round_trip(self, store):
        user = store.register(_candidate(profile=AlumniProfile(ktu_id="LIDK77", passout_year=2019)))
        assert store.get_by_id(user.id).profile == AlumniProfile(ktu_id="LIDK77", passout_year=2019)


class TestUpdateProfile:
    def test_partial_update(self, store):
        user = store.register(_candidate())
        updated = store.update_profile(user.id, ProfilePatch(bio="Hi there", department=Department.ECE))
        assert updated.bio == "Hi there"
        assert updated.department is Department.ECE
        assert updated.phone == user.phone
        assert updated.fullname == user.fullname

    def test_keeping_own_phone_is_not_a_conflict(self, store):
        user = store.register(_candidate())
        assert store.update_profile(user.id, ProfilePatch(phone=user.phone)).phone == user.phone

    def test_phone_owned_by_other_user_conflicts_and_changes_nothing(self, store):
        store.register(_candidate())
        other = store.register(
            _candidate(email="o@gecidukki.ac.in", username="o", phone="+919000000001", profile=StudentProfile(ktu_id="IDK9"))
        )
        with pytest.raises(ConflictError) as exc_info:
            store.update_profile(other.id, ProfilePatch(phone="+919876543210", bio="should not stick"))
        assert exc_info.value.field == "phone"
        unchanged = store.get_by_id(other.id)
        assert unchanged.phone == "+919000000001"
        assert unchanged.bio == ""

    def test_ktu_id_owned_by_other_user_conflicts(self, store):
        store.register(_candidate())
        other = store.register(
            _candidate(email="o@gecidukki.ac.in", username="o", phone="+919000000001", profile=StudentProfile(ktu_id="IDK9"))
        )
        with pytest.raises(ConflictError) as exc_info:
            store.update_profile(other.id, ProfilePatch(ktu_id="IDK1234"))
        assert exc_info.value.field == "ktu_id"

    def test_social_links_merge(self, store):
        user = store.register(_candidate())
        store.update_profile(user.id, ProfilePatch(social_links={"github": "https://github.com/jane"}))
        updated = store.update_profile(user.id, ProfilePatch(social_links={"website": "https://jane.dev"}))
        assert updated.social_links == {"github": "https://github.com/jane", "website": "https://jane.dev"}

    def test_unknown_user(self, store):
        with pytest.raises(NotFoundError):
            store.update_profile(404, ProfilePatch(bio="x"))


class TestChangePassword:
    def test_success_replaces_hash(self, store):
        user = store.register(_candidate())
        store.change_password(user.id, "Abcde1", "NewPass9")
        stored = store.get_by_id(user.id)
        assert verify_password("NewPass9", stored.hashed_password)
        assert not verify_password("Abcde1", stored.hashed_password)

    def test_wrong_current_password_leaves_hash_unchanged(self, store):
        user = store.register(_candidate())
        with pytest.raises(ForbiddenError):
            store.change_password(user.id, "wrong", "NewPass9")
        assert store.get_by_id(user.id).hashed_password == user.hashed_password

    def test_unknown_user(self, store):
        with pytest.raises(NotFoundError):
            store.change_password(404, "Abcde1", "NewPass9")


class TestAuthorsAndAvatar:
    def test_set_profile_image(self, store):
        user = store.register(_candidate())
        assert store.set_profile_image(user.id, "/uploads/profile-images/a.png") is True
        assert store.get_by_id(user.id).profile_img == "/uploads/profile-images/a.png"
        assert store.set_profile_image(404, "/x.png") is False

    def test_get_authors(self, store):
        user = store.register(_candidate())
        cards = store.get_authors({user.id, 404})
        assert cards == {user.id: {"fullname": "Jane Doe", "username": "jane", "profile_img": user.profile_img}}
        assert store.get_authors(set()) == {}
