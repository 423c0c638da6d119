"""Products app tests."""

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from products.catalog import ProductSnapshot, lookup_products
from products.models import Product


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class ProductCatalogTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='cat_customer',
			email='cat_customer@example.com',
			password='12345678',
			user_type=User.CUSTOMER,
		)
		cls.admin = User.objects.create_user(
			username='cat_admin',
			email='cat_admin@example.com',
			password='12345678',
			user_type=User.ADMIN,
		)
		cls.rice = Product.objects.create(name='Sona Masoori Rice', category='grains', price_cents=6400)
		cls.milk = Product.objects.create(name='Toned Milk 1L', category='dairy', price_cents=5600)
		cls.draft = Product.objects.create(name='Seasonal Jackfruit', category='fruit', price_cents=9000, is_published=False)

	def test_lookup_returns_published_snapshots_only(self):
		result = lookup_products([self.rice.id, self.draft.id, 999999])
		self.assertEqual(result, {self.rice.id: ProductSnapshot(id=self.rice.id, name='Sona Masoori Rice', price_cents=6400)})
		self.assertEqual(lookup_products([]), {})

	def test_public_list_hides_unpublished(self):
		res = APIClient().get('/api/products/')
		self.assertEqual(res.status_code, 200)
		names = [p['name'] for p in res.data['results']]
		self.assertEqual(names, ['Sona Masoori Rice', 'Toned Milk 1L'])

	def test_category_filter_and_categories(self):
		res = APIClient().get('/api/products/', {'category': 'dairy'})
		self.assertEqual([p['id'] for p in res.data['results']], [self.milk.id])

		res = APIClient().get('/api/products/categories/')
		self.assertEqual(res.data, ['dairy', 'grains'])

	def test_admin_sees_and_manages_everything(self):
		client = APIClient()
		client.force_authenticate(user=self.admin)

		res = client.get('/api/products/')
		self.assertEqual(res.data['count'], 3)

		res = client.post('/api/products/', data={
			'name': 'Curd 400g',
			'category': ' Dairy ',
			'price_cents': 4500,
		}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['category'], 'dairy')

	def test_customer_cannot_write(self):
		client = APIClient()
		client.force_authenticate(user=self.customer)
		res = client.patch(f'/api/products/{self.rice.id}/', data={'price_cents': 1}, format='json')
		self.assertEqual(res.status_code, 403)
		self.rice.refresh_from_db()
		self.assertEqual(self.rice.price_cents, 6400)
