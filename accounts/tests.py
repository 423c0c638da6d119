"""Accounts app tests."""

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.db import IntegrityError, transaction
from django.test import TestCase, TransactionTestCase, override_settings
from rest_framework.test import APIClient, APIRequestFactory

from accounts import services
from accounts.models import AdminCredentials, CustomerProfile
from accounts.permissions import IsStoreAdmin, is_admin, require_admin
from core.exceptions import AdminCredentialsError, ForbiddenError
from finance.tests import run_concurrently


class AccountsFixtureMixin:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='acc_customer',
			email='acc_customer@example.com',
			password='12345678',
			user_type=User.CUSTOMER,
		)
		cls.second = User.objects.create_user(
			username='acc_second',
			email='acc_second@example.com',
			password='12345678',
			user_type=User.CUSTOMER,
		)


class RoleTests(AccountsFixtureMixin, TestCase):

	def test_roles(self):
		self.assertEqual(services.get_user_role(AnonymousUser()), services.ROLE_GUEST)
		self.assertEqual(services.get_user_role(self.customer), services.ROLE_USER)

		get_user_model().objects.filter(pk=self.customer.pk).update(user_type='admin')
		self.assertEqual(services.get_user_role(self.customer), services.ROLE_ADMIN)

	def test_superuser_counts_as_admin(self):
		root = get_user_model().objects.create_superuser('root_user', 'root@example.com', '12345678')
		self.assertTrue(is_admin(root))

	def test_require_admin(self):
		with self.assertRaises(ForbiddenError):
			require_admin(self.customer)
		with self.assertRaises(ForbiddenError):
			require_admin(AnonymousUser())

	def test_store_admin_permission_rereads_role(self):
		request = APIRequestFactory().get('/api/orders/all/')
		request.user = self.customer
		permission = IsStoreAdmin()
		self.assertFalse(permission.has_permission(request, None))

		get_user_model().objects.filter(pk=self.customer.pk).update(user_type='admin')
		self.assertTrue(permission.has_permission(request, None))

		request.user = AnonymousUser()
		self.assertFalse(permission.has_permission(request, None))


class AdminCredentialTests(AccountsFixtureMixin, TestCase):
	"""First-time setup, login with the shared credentials and rotation."""

	def test_bootstrap_then_authenticate(self):
		self.assertFalse(services.is_admin_configured())

		with self.assertLogs('storefront.audit', level='INFO'):
			services.initialize_admin_access(self.customer, 'owner', 's3cret-pass')

		self.assertTrue(services.is_admin_configured())
		self.assertTrue(is_admin(self.customer))
		creds = AdminCredentials.objects.get()
		self.assertNotEqual(creds.password, 's3cret-pass')

		services.authenticate_admin(self.second, 'owner', 's3cret-pass')
		self.assertTrue(is_admin(self.second))

	def test_setup_only_once(self):
		services.initialize_admin_access(self.customer, 'owner', 's3cret-pass')
		with self.assertRaises(AdminCredentialsError) as ctx:
			services.initialize_admin_access(self.second, 'other', 'other-pass')
		self.assertEqual(str(ctx.exception.detail), 'Admin is already configured.')
		self.assertFalse(is_admin(self.second))

	def test_credentials_table_holds_a_single_row(self):
		services.initialize_admin_access(self.customer, 'owner', 's3cret-pass')
		self.assertEqual(AdminCredentials.objects.get().pk, AdminCredentials.SINGLETON_PK)

		with self.assertRaises(IntegrityError):
			with transaction.atomic():
				AdminCredentials.objects.create(pk=2, username='other', password='x')

		services.update_admin_credentials(self.customer, 'owner2', 'new-pass')
		self.assertEqual(AdminCredentials.objects.count(), 1)

	def test_authenticate_errors(self):
		with self.assertRaises(AdminCredentialsError) as ctx:
			services.authenticate_admin(self.second, 'owner', 'x')
		self.assertEqual(str(ctx.exception.detail), 'Credentials not set.')

		services.initialize_admin_access(self.customer, 'owner', 's3cret-pass')
		with self.assertRaises(ForbiddenError) as ctx:
			services.authenticate_admin(self.second, 'owner', 'wrong')
		self.assertEqual(str(ctx.exception.detail), 'Wrong username or password.')
		self.assertFalse(is_admin(self.second))

	def test_rotation_requires_admin(self):
		services.initialize_admin_access(self.customer, 'owner', 's3cret-pass')

		with self.assertRaises(ForbiddenError):
			services.update_admin_credentials(self.second, 'hijack', 'hijack-pass')

		services.update_admin_credentials(self.customer, 'owner2', 'new-pass')
		services.authenticate_admin(self.second, 'owner2', 'new-pass')
		self.assertTrue(is_admin(self.second))

	def test_grant_and_revoke(self):
		services.initialize_admin_access(self.customer, 'owner', 's3cret-pass')

		services.grant_admin_role(self.customer, self.second.pk)
		self.assertTrue(is_admin(self.second))

		services.revoke_admin_role(self.customer, self.second.pk)
		self.assertFalse(is_admin(self.second))

		with self.assertRaises(ForbiddenError):
			services.revoke_admin_role(self.customer, self.customer.pk)
		with self.assertRaises(ForbiddenError):
			services.grant_admin_role(self.second, self.second.pk)


class ConcurrentAdminSetupTests(TransactionTestCase):

	def test_two_first_time_setups_make_one_admin(self):
		User = get_user_model()
		first = User.objects.create_user(username='setup_a', password='12345678')
		second = User.objects.create_user(username='setup_b', password='12345678')

		outcomes = run_concurrently(
			lambda: services.initialize_admin_access(first, 'owner_a', 'pass-a'),
			lambda: services.initialize_admin_access(second, 'owner_b', 'pass-b'),
		)

		self.assertEqual(sorted(outcomes), ['AdminCredentialsError', 'ok'])
		self.assertEqual(AdminCredentials.objects.count(), 1)
		self.assertEqual(User.objects.filter(user_type=User.ADMIN).count(), 1)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AccountsApiTests(AccountsFixtureMixin, TestCase):

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.customer)

	def test_register(self):
		res = APIClient().post('/api/accounts/register/', data={
			'username': 'new_shopper',
			'password': 'long-enough-pass',
			'email': 'new@example.com',
		}, format='json')
		self.assertEqual(res.status_code, 201)
		user = get_user_model().objects.get(username='new_shopper')
		self.assertEqual(user.user_type, 'customer')
		self.assertTrue(user.check_password('long-enough-pass'))

	def test_profile_phone_is_normalized(self):
		res = self.client.put('/api/accounts/profile/', data={
			'name': 'Asha Rao',
			'phone_number': '+1 (650) 253-0000',
			'pickup_address': '12 Market Road',
		}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['phone_number'], '+16502530000')
		self.assertEqual(CustomerProfile.objects.get(user=self.customer).name, 'Asha Rao')

		res = self.client.get('/api/accounts/profile/')
		self.assertEqual(res.data['pickup_address'], '12 Market Road')

	def test_profile_rejects_invalid_phone(self):
		res = self.client.put('/api/accounts/profile/', data={
			'name': 'Asha Rao',
			'phone_number': '12',
			'pickup_address': '12 Market Road',
		}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertFalse(CustomerProfile.objects.exists())

	def test_missing_profile_is_404(self):
		self.assertEqual(self.client.get('/api/accounts/profile/').status_code, 404)

	def test_admin_setup_flow(self):
		res = APIClient().get('/api/accounts/admin/configured/')
		self.assertEqual(res.data, {'configured': False})

		res = self.client.post('/api/accounts/admin/setup/', data={'username': '', 'password': ''}, format='json')
		self.assertEqual(res.status_code, 400)

		res = self.client.post('/api/accounts/admin/setup/', data={'username': 'owner', 'password': 'pw'}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(self.client.get('/api/accounts/role/').data, {'role': 'admin'})

		res = self.client.post('/api/accounts/admin/setup/', data={'username': 'x', 'password': 'y'}, format='json')
		self.assertEqual(res.status_code, 409)

		other = APIClient()
		other.force_authenticate(user=self.second)
		res = other.post('/api/accounts/admin/login/', data={'username': 'owner', 'password': 'nope'}, format='json')
		self.assertEqual(res.status_code, 403)
		res = other.post('/api/accounts/admin/login/', data={'username': 'owner', 'password': 'pw'}, format='json')
		self.assertEqual(res.status_code, 200)

		res = self.client.put('/api/accounts/admin/credentials/', data={'username': 'owner', 'password': 'pw2'}, format='json')
		self.assertEqual(res.status_code, 204)

	def test_guest_role(self):
		self.assertEqual(APIClient().get('/api/accounts/role/').data, {'role': 'guest'})
