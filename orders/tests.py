"""Orders app tests."""

from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import CustomerProfile
from cart.models import ShoppingCartItem
from cart.services import add_to_cart, get_cart
from core.exceptions import (
	EmptyCartError,
	ForbiddenError,
	InvalidPaymentMethodError,
	InvalidStateTransitionError,
	NotFoundError,
	PricingError,
)
from finance.payment_status import PaymentPending
from orders import services
from orders.kot import build_kot, render_kot_text
from orders.models import Order, OrderStatus, PaymentMethod, TrackingEntry
from orders.tracking import add_entry, get_tracking
from products.models import Product


class OrderFixtureMixin:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='test_customer',
			email='test_customer@example.com',
			password='12345678',
			user_type=User.CUSTOMER,
		)
		cls.other_customer = User.objects.create_user(
			username='other_customer',
			email='other_customer@example.com',
			password='12345678',
			user_type=User.CUSTOMER,
		)
		cls.admin = User.objects.create_user(
			username='test_admin',
			email='test_admin@example.com',
			password='12345678',
			user_type=User.ADMIN,
		)
		cls.product_a = Product.objects.create(name='Basmati Rice 1kg', category='grains', price_cents=5000)
		cls.product_b = Product.objects.create(name='Toor Dal 500g', category='pulses', price_cents=1250)
		cls.hidden = Product.objects.create(name='Old Stock', category='misc', price_cents=100, is_published=False)

	def place_cod(self, items=None, customer=None):
		return services.place_order(
			customer or self.customer,
			items or [(self.product_a.id, 2)],
			PaymentMethod.CASH_ON_DELIVERY,
		)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class PlaceOrderTests(OrderFixtureMixin, TestCase):
	"""Order placement: pricing, snapshot, cart handoff and first tracking entry."""

	def test_cash_order_scenario(self):
		order = self.place_cod()

		self.assertEqual(order.total_price_cents, 10000)
		self.assertEqual(order.status, OrderStatus.PENDING)
		self.assertEqual(order.payment_status, PaymentPending())
		entries = get_tracking(order.id, self.customer)
		self.assertEqual(len(entries), 1)
		self.assertEqual(entries[0].status, OrderStatus.PENDING)
		self.assertEqual(entries[0].note, 'Order placed')

	def test_items_are_snapshotted(self):
		order = self.place_cod([(self.product_a.id, 1), (self.product_b.id, 3)])

		Product.objects.filter(pk=self.product_a.pk).update(name='Renamed', price_cents=99999)
		items = list(order.items.order_by('position'))
		self.assertEqual([i.product_name for i in items], ['Basmati Rice 1kg', 'Toor Dal 500g'])
		self.assertEqual([i.unit_price_cents for i in items], [5000, 1250])
		self.assertEqual(order.total_price_cents, 5000 + 3 * 1250)

	def test_duplicate_products_are_merged_in_first_seen_order(self):
		order = self.place_cod([(self.product_b.id, 1), (self.product_a.id, 1), (self.product_b.id, 2)])

		items = list(order.items.order_by('position'))
		self.assertEqual([(i.product_id, i.quantity) for i in items], [(self.product_b.id, 3), (self.product_a.id, 1)])

	def test_empty_items_raise_empty_cart(self):
		with self.assertRaises(EmptyCartError):
			services.place_order(self.customer, [], PaymentMethod.CARD)
		self.assertFalse(Order.objects.exists())

	def test_invalid_quantities_raise_pricing_error(self):
		for qty in (0, -1, True, 1.5):
			with self.assertRaises(PricingError):
				self.place_cod([(self.product_a.id, qty)])
		self.assertFalse(Order.objects.exists())

	def test_unknown_payment_method(self):
		with self.assertRaises(InvalidPaymentMethodError):
			services.place_order(self.customer, [(self.product_a.id, 1)], 'bitcoin')

	def test_place_order_clears_cart(self):
		add_to_cart(self.customer, self.product_a.id, 2)
		add_to_cart(self.customer, self.product_b.id, 1)

		order = services.place_order_from_cart(self.customer, PaymentMethod.CARD)

		self.assertEqual(order.total_price_cents, 11250)
		self.assertEqual(get_cart(self.customer).items.count(), 0)

	def test_pricing_error_rolls_back_and_keeps_cart(self):
		add_to_cart(self.customer, self.product_a.id, 2)
		add_to_cart(self.customer, self.product_b.id, 1)
		Product.objects.filter(pk=self.product_b.pk).update(is_published=False)

		with self.assertRaises(PricingError):
			services.place_order_from_cart(self.customer, PaymentMethod.CASH_ON_DELIVERY)

		self.assertFalse(Order.objects.exists())
		self.assertEqual(ShoppingCartItem.objects.filter(cart__user=self.customer).count(), 2)

	def test_empty_cart_checkout(self):
		with self.assertRaises(EmptyCartError):
			services.place_order_from_cart(self.customer, PaymentMethod.CASH_ON_DELIVERY)


class OrderVisibilityTests(OrderFixtureMixin, TestCase):

	def test_owner_and_admin_can_read(self):
		order = self.place_cod()
		self.assertEqual(services.get_order(order.id, self.customer).id, order.id)
		self.assertEqual(services.get_order(order.id, self.admin).id, order.id)

	def test_other_customer_is_forbidden(self):
		order = self.place_cod()
		with self.assertRaises(ForbiddenError):
			services.get_order(order.id, self.other_customer)
		with self.assertRaises(ForbiddenError):
			get_tracking(order.id, self.other_customer)

	def test_missing_order(self):
		with self.assertRaises(NotFoundError):
			services.get_order(424242, self.admin)

	def test_customer_list_is_newest_first_with_id_tiebreak(self):
		first = self.place_cod()
		second = self.place_cod()
		third = self.place_cod()
		self.place_cod(customer=self.other_customer)
		same_time = timezone.now()
		Order.objects.filter(pk__in=[first.pk, second.pk]).update(timestamp=same_time)
		Order.objects.filter(pk=third.pk).update(timestamp=same_time - timedelta(hours=1))

		ids = [o.id for o in services.list_orders_for_customer(self.customer)]
		self.assertEqual(ids, [second.id, first.id, third.id])

	def test_list_all_orders_is_admin_only(self):
		self.place_cod()
		self.place_cod(customer=self.other_customer)

		self.assertEqual(len(services.list_all_orders(self.admin)), 2)
		with self.assertRaises(ForbiddenError):
			services.list_all_orders(self.customer)


class TrackingLogTests(OrderFixtureMixin, TestCase):
	"""The timeline is append-only and ends with the current status."""

	def test_sequences_are_monotonic(self):
		order = self.place_cod()
		add_entry(order, order.status, 'Packed')
		add_entry(order, order.status, 'Ready')

		sequences = [e.sequence for e in get_tracking(order.id, self.customer)]
		self.assertEqual(sequences, [1, 2, 3])

	def test_entries_cannot_be_edited_or_deleted(self):
		order = self.place_cod()
		entry = order.tracking_entries.get()

		entry.note = 'changed'
		with self.assertRaises(InvalidStateTransitionError):
			entry.save()
		with self.assertRaises(InvalidStateTransitionError):
			entry.delete()
		with self.assertRaises(InvalidStateTransitionError):
			TrackingEntry.objects.filter(order=order).update(note='changed')
		with self.assertRaises(InvalidStateTransitionError):
			TrackingEntry.objects.filter(order=order).delete()

		entry.refresh_from_db()
		self.assertEqual(entry.note, 'Order placed')


class KitchenOrderTicketTests(OrderFixtureMixin, TestCase):

	def test_kot_projection(self):
		CustomerProfile.objects.create(
			user=self.customer,
			name='Asha Rao',
			phone_number='+16502530000',
			pickup_address='12 Market Road',
		)
		order = self.place_cod([(self.product_a.id, 2), (self.product_b.id, 1)])

		kot = build_kot(order.id, self.admin)

		self.assertEqual(kot.order_id, order.id)
		self.assertEqual(kot.customer_name, 'Asha Rao')
		self.assertEqual(kot.customer_phone, '+16502530000')
		self.assertEqual(kot.pickup_address, '12 Market Road')
		self.assertEqual([(l.name, l.quantity, l.unit_price_cents) for l in kot.lines], [
			('Basmati Rice 1kg', 2, 5000),
			('Toor Dal 500g', 1, 1250),
		])
		self.assertEqual(kot.total_price_cents, 11250)
		self.assertEqual(kot.payment_method, 'Cash on delivery')
		self.assertEqual(kot.payment_label, 'Pending')

		text = render_kot_text(kot)
		self.assertIn(f'Order #{order.id}', text)
		self.assertIn('2 x Basmati Rice 1kg', text)
		self.assertIn('112.50', text)
		self.assertIn('Cash on delivery (Pending)', text)

	def test_kot_without_profile(self):
		order = self.place_cod()
		kot = build_kot(order.id, self.admin)
		self.assertIsNone(kot.customer_name)
		self.assertIn('Customer: -', render_kot_text(kot))

	def test_kot_is_admin_only(self):
		order = self.place_cod()
		with self.assertRaises(ForbiddenError):
			build_kot(order.id, self.customer)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderApiTests(OrderFixtureMixin, TestCase):

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.customer)
		self.admin_client = APIClient()
		self.admin_client.force_authenticate(user=self.admin)

	def test_create_order_from_cart_returns_201_and_clears_cart(self):
		add_to_cart(self.customer, self.product_a.id, 2)

		res = self.client.post('/api/orders/', data={'payment_method': 'cashOnDelivery'}, format='json')

		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['total_price_cents'], 10000)
		self.assertEqual(res.data['status'], 'pending')
		self.assertEqual(res.data['payment_status'], {'state': 'pending'})
		self.assertEqual(len(res.data['tracking']), 1)
		self.assertEqual(get_cart(self.customer).items.count(), 0)

	def test_create_order_with_explicit_items(self):
		res = self.client.post('/api/orders/', data={
			'payment_method': 'cardPayment',
			'items': [{'product_id': self.product_b.id, 'quantity': 4}],
		}, format='json')

		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['total_price_cents'], 5000)
		self.assertEqual(res.data['items'][0]['product_name'], 'Toor Dal 500g')

	def test_empty_cart_returns_400(self):
		res = self.client.post('/api/orders/', data={'payment_method': 'cashOnDelivery'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['detail'].code, 'empty_cart')

	def test_unavailable_product_returns_400_and_cart_unchanged(self):
		add_to_cart(self.customer, self.product_a.id, 1)
		Product.objects.filter(pk=self.product_a.pk).update(is_published=False)

		res = self.client.post('/api/orders/', data={'payment_method': 'cashOnDelivery'}, format='json')

		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['detail'].code, 'pricing_error')
		self.assertEqual(get_cart(self.customer).items.count(), 1)

	def test_list_and_retrieve_own_orders(self):
		mine = self.place_cod()
		theirs = self.place_cod(customer=self.other_customer)

		res = self.client.get('/api/orders/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([o['id'] for o in res.data['results']], [mine.id])

		self.assertEqual(self.client.get(f'/api/orders/{mine.id}/').status_code, 200)
		self.assertEqual(self.client.get(f'/api/orders/{theirs.id}/').status_code, 403)
		self.assertEqual(self.client.get('/api/orders/999999/').status_code, 404)

	def test_all_orders_endpoint_requires_admin(self):
		self.place_cod()
		self.place_cod(customer=self.other_customer)

		self.assertEqual(self.client.get('/api/orders/all/').status_code, 403)
		res = self.admin_client.get('/api/orders/all/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 2)

	def test_tracking_endpoint(self):
		order = self.place_cod()
		res = self.client.get(f'/api/orders/{order.id}/tracking/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([e['sequence'] for e in res.data], [1])

	def test_kot_endpoint(self):
		order = self.place_cod()
		self.assertEqual(self.client.get(f'/api/orders/{order.id}/kot/').status_code, 403)

		res = self.admin_client.get(f'/api/orders/{order.id}/kot/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['payment_label'], 'Pending')
		self.assertIn('KITCHEN ORDER TICKET', res.data['text'])

	def test_admin_actions_over_http(self):
		order = self.place_cod()

		res = self.client.post(f'/api/orders/{order.id}/mark-cod-settled/')
		self.assertEqual(res.status_code, 403)

		res = self.admin_client.post(f'/api/orders/{order.id}/annotate/', data={'note': 'Customer called'}, format='json')
		self.assertEqual(res.status_code, 201)

		res = self.admin_client.post(f'/api/orders/{order.id}/mark-cod-settled/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['status'], 'completed')
		self.assertEqual(res.data['payment_status']['session_ref'], f'cod-{order.id}')
		self.assertEqual([e['is_manual'] for e in res.data['tracking']], [False, True, True])

		res = self.admin_client.post(f'/api/orders/{order.id}/mark-cod-settled/')
		self.assertEqual(res.status_code, 409)

	def test_set_status_endpoint_rejects_illegal_transition(self):
		order = self.place_cod()

		res = self.admin_client.post(f'/api/orders/{order.id}/set-status/', data={'status': 'completed'}, format='json')
		self.assertEqual(res.status_code, 409)

		res = self.admin_client.post(f'/api/orders/{order.id}/set-status/', data={'status': 'canceled'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['status'], 'canceled')

	def test_admin_only_actions_stop_at_the_permission_check(self):
		order = self.place_cod()
		requests_made = [
			('post', f'/api/orders/{order.id}/mark-cod-settled/', {}),
			('post', f'/api/orders/{order.id}/force-complete/', {'note': 'x'}),
			('post', f'/api/orders/{order.id}/set-status/', {'status': 'canceled'}),
			('post', f'/api/orders/{order.id}/annotate/', {'note': 'x'}),
			('get', f'/api/orders/{order.id}/kot/', None),
			('get', '/api/orders/all/', None),
		]

		with mock.patch('orders.views.reconciliation') as reconciliation, \
				mock.patch('orders.views.state_machine') as state_machine, \
				mock.patch('orders.views.build_kot') as kot, \
				mock.patch('orders.views.services.all_orders_queryset') as all_orders:
			for method, path, body in requests_made:
				if method == 'post':
					res = self.client.post(path, data=body, format='json')
				else:
					res = self.client.get(path)
				self.assertEqual(res.status_code, 403, path)

		self.assertFalse(reconciliation.mock_calls)
		self.assertFalse(state_machine.mock_calls)
		kot.assert_not_called()
		all_orders.assert_not_called()

	def test_demoted_admin_loses_access_on_next_request(self):
		self.assertEqual(self.admin_client.get('/api/orders/all/').status_code, 200)

		get_user_model().objects.filter(pk=self.admin.pk).update(user_type='customer')

		self.assertEqual(self.admin_client.get('/api/orders/all/').status_code, 403)
