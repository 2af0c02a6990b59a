import pytest
from common.exceptions import DuplicateEntity, EntityNotFound, ValidationFailure
from users.services import find_registered_user, find_user_by_email, register_user, update_profile
from users.tests.factories import UserFactory


@pytest.mark.django_db
def test_register_user_normalizes_email():
    user = register_user(username="alice", email="  Alice@Example.COM ", password="s3cret-pass")
    assert user.email == "alice@example.com"
    assert user.check_password("s3cret-pass")
    assert user.is_registered


@pytest.mark.django_db
def test_register_user_rejects_duplicate_email_case_insensitive():
    UserFactory(username="bob", email="bob@example.com")
    with pytest.raises(DuplicateEntity) as exc:
        register_user(username="bobby", email="BOB@example.com", password="pw")
    assert exc.value.field == "email"


@pytest.mark.django_db
def test_register_user_rejects_duplicate_username():
    UserFactory(username="carol")
    with pytest.raises(DuplicateEntity) as exc:
        register_user(username="Carol", email="carol2@example.com", password="pw")
    assert exc.value.field == "username"


@pytest.mark.django_db
def test_register_user_requires_username_and_email():
    with pytest.raises(ValidationFailure):
        register_user(username=" ", email="x@example.com", password="pw")
    with pytest.raises(ValidationFailure):
        register_user(username="dave", email="", password="pw")


@pytest.mark.django_db
def test_find_registered_user_missing():
    with pytest.raises(EntityNotFound):
        find_registered_user(999999)


@pytest.mark.django_db
def test_find_user_by_email_ignores_case():
    user = UserFactory(email="erin@example.com")
    assert find_user_by_email(" ERIN@example.com ").id == user.id
    with pytest.raises(EntityNotFound):
        find_user_by_email("nobody@example.com")


@pytest.mark.django_db
def test_update_profile():
    user = UserFactory(phone="+14155552671")
    updated = update_profile(user_id=user.id, first_name=" Frank ", last_name="Ocean")
    assert (updated.first_name, updated.last_name, updated.phone) == ("Frank", "Ocean", "+14155552671")

    assert update_profile(user_id=user.id, phone="").phone == ""
    with pytest.raises(ValidationFailure) as exc:
        update_profile(user_id=user.id, phone="call me")
    assert exc.value.field == "phone"
    with pytest.raises(ValidationFailure) as exc:
        update_profile(user_id=user.id, first_name="  ")
    assert exc.value.field == "first_name"
    with pytest.raises(EntityNotFound):
        update_profile(user_id=999999, first_name="Ghost")

    user.refresh_from_db()
    assert user.first_name == "Frank"
    assert user.phone == ""
