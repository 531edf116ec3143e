# tests/test_context.py

import pytest
from django.test import RequestFactory

from academics.models import AcademicYear
from utils.context import RequestContext, get_request_context, get_client_ip, set_request_context, clear_request_context

pytestmark = pytest.mark.django_db


def test_records_are_stamped_with_the_acting_user():
    with RequestContext(user_id=42):
        year = AcademicYear.objects.create(name="2030")

    assert year.created_by_id == "42"
    assert year.updated_by_id == "42"
    assert get_request_context() is None


def test_updates_keep_the_creator():
    with RequestContext(user_id=1):
        year = AcademicYear.objects.create(name="2031")
    created_at = year.created_at

    with RequestContext(user_id=2):
        year.name = "2031/32"
        year.save()

    assert year.created_by_id == "1"
    assert year.updated_by_id == "2"
    assert year.updated_at >= created_at


def test_nested_context_is_restored():
    set_request_context(user_id=7)
    try:
        with RequestContext(user_id=8):
            assert get_request_context()['user_id'] == "8"
        assert get_request_context()['user_id'] == "7"
    finally:
        clear_request_context()


def test_without_context_audit_fields_stay_empty():
    year = AcademicYear.objects.create(name="2032")
    assert year.created_by_id is None


@pytest.mark.parametrize("meta, expected", [
    ({'HTTP_X_FORWARDED_FOR': '41.70.1.2, 10.0.0.1', 'REMOTE_ADDR': '10.0.0.1'}, '41.70.1.2'),
    ({'REMOTE_ADDR': '10.0.0.9'}, '10.0.0.9'),
])
def test_get_client_ip(meta, expected):
    request = RequestFactory().get('/', **meta)
    assert get_client_ip(request) == expected


def test_middleware_clears_context_after_request(client, make_user):
    client.force_login(make_user())

    response = client.get('/accounts/me/')

    assert response.status_code == 200
    assert get_request_context() is None
