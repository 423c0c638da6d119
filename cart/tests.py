"""Cart app tests."""

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from cart import services
from core.exceptions import NotFoundError
from products.models import Product


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CartTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='cart_customer',
			email='cart_customer@example.com',
			password='12345678',
			user_type=User.CUSTOMER,
		)
		cls.atta = Product.objects.create(name='Whole Wheat Atta 5kg', category='grains', price_cents=26000)
		cls.ghee = Product.objects.create(name='Cow Ghee 500ml', category='dairy', price_cents=38000)
		cls.hidden = Product.objects.create(name='Discontinued', category='misc', price_cents=100, is_published=False)

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.customer)

	def test_add_merges_quantities(self):
		services.add_to_cart(self.customer, self.atta.id, 1)
		services.add_to_cart(self.customer, self.atta.id, 2)

		cart = services.get_cart(self.customer)
		self.assertEqual(services.cart_snapshot(cart), [(self.atta.id, 3)])
		self.assertEqual(cart.total_price_cents, 78000)

	def test_update_to_zero_removes_line(self):
		services.add_to_cart(self.customer, self.atta.id, 1)
		services.add_to_cart(self.customer, self.ghee.id, 1)

		services.update_cart_item(self.customer, self.ghee.id, 4)
		services.update_cart_item(self.customer, self.atta.id, 0)

		self.assertEqual(services.cart_snapshot(services.get_cart(self.customer)), [(self.ghee.id, 4)])

	def test_invalid_requests(self):
		with self.assertRaises(NotFoundError):
			services.add_to_cart(self.customer, self.hidden.id, 1)
		with self.assertRaises(ValidationError):
			services.add_to_cart(self.customer, self.atta.id, 0)
		with self.assertRaises(NotFoundError):
			services.remove_from_cart(self.customer, self.atta.id)
		with self.assertRaises(NotFoundError):
			services.update_cart_item(self.customer, self.atta.id, 2)

	def test_cart_api(self):
		res = self.client.post('/api/cart/items/', data={'product_id': self.atta.id, 'quantity': 2}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['total_price_cents'], 52000)

		res = self.client.patch(f'/api/cart/items/{self.atta.id}/', data={'quantity': 1}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'][0]['quantity'], 1)

		res = self.client.delete(f'/api/cart/items/{self.atta.id}/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'], [])

		self.client.post('/api/cart/items/', data={'product_id': self.ghee.id}, format='json')
		res = self.client.post('/api/cart/clear/')
		self.assertEqual(res.data['items'], [])

		res = self.client.get('/api/cart/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['total_price_cents'], 0)

	def test_cart_requires_authentication(self):
		self.assertIn(APIClient().get('/api/cart/').status_code, (401, 403))
