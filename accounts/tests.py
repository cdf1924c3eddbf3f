from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.http import JsonResponse
from django.test import RequestFactory, TestCase
from django.contrib.auth.models import AnonymousUser

from accounts.mixins import api_login_required, role_required
from accounts.models import DEFAULT_ROLES, ROLE_ADMIN, ROLE_COMPANY, ROLE_ENTREPRENEUR
from accounts.permissions import (
    user_can_cancel_agreement,
    user_can_view_agreement,
    user_is_admin,
    user_is_company,
)
from nda.models import NdaAgreement
from tests.helpers import make_company, make_entrepreneur, make_project, make_user


class UserModelTests(TestCase):
    def test_create_user_uses_email_login(self):
        user = get_user_model().objects.create_user(email='Test@EXAMPLE.com', password='testpass123')
        self.assertEqual(user.email, 'Test@example.com')
        self.assertTrue(user.check_password('testpass123'))
        self.assertFalse(user.is_staff)

    def test_create_superuser(self):
        admin = get_user_model().objects.create_superuser(email='root@example.com', password='pass')
        self.assertTrue(admin.is_superuser)
        self.assertTrue(admin.is_app_admin)

    def test_email_lookup_is_case_insensitive(self):
        user = make_user('john@example.com')
        self.assertEqual(get_user_model().objects.get_by_email_case_insensitive('JOHN@example.com'), user)
        self.assertIsNone(get_user_model().objects.get_by_email_case_insensitive('jane@example.com'))

    def test_default_role_groups_exist_after_migrate(self):
        self.assertEqual(
            set(Group.objects.filter(name__in=DEFAULT_ROLES).values_list('name', flat=True)),
            set(DEFAULT_ROLES),
        )

    def test_roles_come_from_groups(self):
        company = make_user('c@example.com', ROLE_COMPANY)
        owner = make_user('o@example.com', ROLE_ENTREPRENEUR)
        self.assertTrue(company.is_company)
        self.assertFalse(company.is_entrepreneur)
        self.assertTrue(owner.is_entrepreneur)
        self.assertEqual(company.get_role_names(), [ROLE_COMPANY])


class PermissionTests(TestCase):
    def setUp(self):
        self.owner = make_entrepreneur()
        self.company = make_company()
        self.admin = make_user('admin@example.com', ROLE_ADMIN)
        self.agreement = NdaAgreement.objects.create(project=make_project(self.owner), company_user=self.company)

    def test_anonymous_users_have_no_role(self):
        anonymous = AnonymousUser()
        self.assertFalse(user_is_admin(anonymous))
        self.assertFalse(user_is_company(anonymous))
        self.assertFalse(user_can_view_agreement(anonymous, self.agreement))

    def test_cancel_rights(self):
        self.assertTrue(user_can_cancel_agreement(self.company, self.agreement))
        self.assertTrue(user_can_cancel_agreement(self.admin, self.agreement))
        self.assertFalse(user_can_cancel_agreement(self.owner, self.agreement))

    def test_view_rights(self):
        self.assertTrue(user_can_view_agreement(self.owner, self.agreement))
        self.assertTrue(user_can_view_agreement(self.company, self.agreement))
        self.assertFalse(user_can_view_agreement(make_company('rival@example.com'), self.agreement))


class RoleRequiredTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

        @role_required([ROLE_COMPANY])
        def company_view(request):
            return JsonResponse({'ok': True})

        @api_login_required
        def member_view(request):
            return JsonResponse({'ok': True})

        self.company_view = company_view
        self.member_view = member_view

    def call(self, view, user):
        request = self.factory.get('/')
        request.user = user
        return view(request)

    def test_anonymous_gets_401(self):
        self.assertEqual(self.call(self.company_view, AnonymousUser()).status_code, 401)
        self.assertEqual(self.call(self.member_view, AnonymousUser()).status_code, 401)

    def test_wrong_role_gets_403(self):
        self.assertEqual(self.call(self.company_view, make_entrepreneur()).status_code, 403)

    def test_company_and_admin_pass(self):
        self.assertEqual(self.call(self.company_view, make_company()).status_code, 200)
        self.assertEqual(self.call(self.company_view, make_user('staff@example.com', is_staff=True)).status_code, 200)
