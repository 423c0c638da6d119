"""Finance app tests."""

import threading
import time
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from core.exceptions import (
	AlreadySettledError,
	ForbiddenError,
	InvalidPaymentMethodError,
	InvalidStateTransitionError,
	ProviderError,
)
from finance import reconciliation, state_machine
from finance.checkout import (
	CheckoutBroker,
	PollPolicy,
	SessionCompleted,
	SessionFailed,
	SessionPending,
)
from finance.payment_status import (
	PaymentCompleted,
	PaymentFailed,
	PaymentPending,
	from_record,
	to_record,
)
from finance.providers import (
	SESSION_COMPLETED,
	SESSION_FAILED,
	SESSION_PENDING,
	CheckoutSession,
	LineItem,
	PaymentProvider,
	ProviderSessionStatus,
	StripeProvider,
)
from orders.models import Order, OrderStatus, PaymentMethod
from orders.services import place_order
from products.models import Product


class FakeProvider(PaymentProvider):
	"""In-memory provider.

	``script`` maps a session id to the statuses returned by successive polls
	(the last one repeats); an exception instance in the list is raised.
	"""

	script = {}
	created = []

	def create_checkout_session(self, items, success_url, failure_url, reference=None):
		session_ref = f'sess_{len(self.created) + 1}'
		self.created.append({'items': list(items), 'reference': reference, 'session_ref': session_ref})
		return CheckoutSession(session_ref=session_ref, url=f'https://pay.example.test/{session_ref}')

	def get_session_status(self, session_id):
		queue = self.script[session_id]
		result = queue.pop(0) if len(queue) > 1 else queue[0]
		if isinstance(result, Exception):
			raise result
		return result

	@classmethod
	def reset(cls):
		cls.script = {}
		cls.created = []


def completed(order, amount):
	return ProviderSessionStatus(state=SESSION_COMPLETED, raw={
		'amount_total': amount,
		'client_reference_id': str(order.id),
		'payment_status': 'paid',
		'status': 'complete',
	})


PENDING = ProviderSessionStatus(state=SESSION_PENDING, raw={'payment_status': 'unpaid', 'status': 'open'})
EXPIRED = ProviderSessionStatus(state=SESSION_FAILED, raw={'payment_status': 'unpaid', 'status': 'expired'})


class FakeClock:
	def __init__(self):
		self.now = 0.0

	def __call__(self):
		return self.now

	def sleep(self, seconds):
		self.now += seconds


def run_concurrently(*calls):
	"""Start every call at the same moment, each on its own thread and connection.

	Returns one outcome per call in call order: 'ok' or the exception class name.
	"""
	barrier = threading.Barrier(len(calls))
	outcomes = [None] * len(calls)

	def worker(index, call):
		try:
			barrier.wait()
			call()
			outcomes[index] = 'ok'
		except Exception as exc:
			outcomes[index] = type(exc).__name__
		finally:
			connection.close()

	threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
	for thread in threads:
		thread.start()
	for thread in threads:
		thread.join(timeout=60)
	return outcomes


class FinanceFixtureMixin:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='fin_customer',
			email='fin_customer@example.com',
			password='12345678',
			user_type=User.CUSTOMER,
		)
		cls.admin = User.objects.create_user(
			username='fin_admin',
			email='fin_admin@example.com',
			password='12345678',
			user_type=User.ADMIN,
		)
		cls.product = Product.objects.create(name='Alphonso Mango Box', category='fruit', price_cents=5000)

	def setUp(self):
		FakeProvider.reset()

	def card_order(self):
		return place_order(self.customer, [(self.product.id, 2)], PaymentMethod.CARD)

	def cod_order(self):
		return place_order(self.customer, [(self.product.id, 2)], PaymentMethod.CASH_ON_DELIVERY)

	def reload(self, order):
		return Order.objects.select_related('transaction').get(pk=order.pk)


class PaymentStatusRecordTests(TestCase):

	def test_variants_store_only_their_fields(self):
		self.assertEqual(to_record(PaymentPending()), ('pending', {}))
		self.assertEqual(to_record(PaymentFailed(reason='declined')), ('failed', {'reason': 'declined'}))

		state, details = to_record(PaymentCompleted(amount_cents=10000, timestamp=timezone.now(), session_ref='s'))
		self.assertEqual(state, 'completed')
		self.assertEqual(sorted(details), ['amount_cents', 'session_ref', 'timestamp'])

	def test_completed_is_restored_from_json_details(self):
		original = PaymentCompleted(amount_cents=10000, timestamp=timezone.now(), session_ref='sess_1')
		self.assertEqual(from_record(*to_record(original)), original)


class PaymentStateMachineTests(FinanceFixtureMixin, TestCase):
	"""Settlement is idempotent per session and never leaves ``completed``."""

	def test_card_settlement_scenario(self):
		order = self.card_order()

		state_machine.mark_completed(order.id, 'sess_1', 10000)

		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.CONFIRMED)
		payment = order.payment_status
		self.assertIsInstance(payment, PaymentCompleted)
		self.assertEqual((payment.amount_cents, payment.session_ref), (10000, 'sess_1'))
		self.assertEqual(order.tracking_entries.count(), 2)
		self.assertEqual(order.tracking_entries.order_by('-sequence').first().status, OrderStatus.CONFIRMED)

	def test_same_session_is_a_no_op(self):
		order = self.card_order()
		state_machine.mark_completed(order.id, 'sess_1', 10000)
		before = self.reload(order).payment_status

		state_machine.mark_completed(order.id, 'sess_1', 10000)

		order = self.reload(order)
		self.assertEqual(order.payment_status, before)
		self.assertEqual(order.tracking_entries.count(), 2)

	def test_different_session_is_rejected_and_logged(self):
		order = self.card_order()
		state_machine.mark_completed(order.id, 'sess_1', 10000)

		with self.assertLogs('finance.state_machine', level='ERROR'):
			with self.assertRaises(AlreadySettledError):
				state_machine.mark_completed(order.id, 'sess_2', 10000)

		self.assertEqual(self.reload(order).payment_status.session_ref, 'sess_1')

	def test_same_session_with_other_amount_is_logged_not_applied(self):
		order = self.card_order()
		state_machine.mark_completed(order.id, 'sess_1', 10000)

		with self.assertLogs('finance.state_machine', level='ERROR') as logs:
			state_machine.mark_completed(order.id, 'sess_1', 9000)

		self.assertIn('9000', logs.output[0])
		order = self.reload(order)
		self.assertEqual(order.payment_status.amount_cents, 10000)
		self.assertEqual(order.tracking_entries.count(), 2)

	def test_amount_must_be_non_negative_int(self):
		order = self.card_order()
		for amount in (-1, True, 100.0, '100'):
			with self.assertRaises(ValidationError):
				state_machine.mark_completed(order.id, 'sess_1', amount)
		self.assertEqual(self.reload(order).payment_status, PaymentPending())

	def test_cash_orders_reject_card_events(self):
		order = self.cod_order()
		with self.assertRaises(InvalidPaymentMethodError):
			state_machine.mark_completed(order.id, 'sess_1', 10000)
		with self.assertRaises(InvalidPaymentMethodError):
			state_machine.mark_failed(order.id, 'declined')
		self.assertEqual(self.reload(order).payment_status, PaymentPending())

	def test_terminal_orders_reject_settlement(self):
		order = self.card_order()
		Order.objects.filter(pk=order.pk).update(status=OrderStatus.CANCELED)
		with self.assertRaises(InvalidStateTransitionError):
			state_machine.mark_completed(order.id, 'sess_1', 10000)

	def test_failure_keeps_order_pending_and_repeat_is_no_op(self):
		order = self.card_order()

		state_machine.mark_failed(order.id, 'card declined')
		state_machine.mark_failed(order.id, 'card declined')

		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.PENDING)
		self.assertEqual(order.payment_status, PaymentFailed(reason='card declined'))
		self.assertEqual(order.tracking_entries.count(), 2)

	def test_failure_after_completion_is_rejected(self):
		order = self.card_order()
		state_machine.mark_completed(order.id, 'sess_1', 10000)
		with self.assertRaises(AlreadySettledError):
			state_machine.mark_failed(order.id, 'late failure')

	def test_failed_payment_can_be_retried_and_completed(self):
		order = self.card_order()
		state_machine.mark_failed(order.id, 'card declined')

		state_machine.reopen_for_retry(order.id)
		self.assertEqual(self.reload(order).payment_status, PaymentPending())

		state_machine.mark_completed(order.id, 'sess_2', 10000)
		self.assertEqual(self.reload(order).status, OrderStatus.CONFIRMED)


class ConcurrentSettlementTests(TransactionTestCase):
	"""Two tabs settling the same order at once take turns on the order lock."""

	def setUp(self):
		User = get_user_model()
		self.customer = User.objects.create_user(username='race_customer', password='12345678')
		product = Product.objects.create(name='Alphonso Mango Box', category='fruit', price_cents=5000)
		self.order = place_order(self.customer, [(product.id, 2)], PaymentMethod.CARD)

	def slow_lock(self):
		real_lock = state_machine.lock_order

		def lock_and_hold(order_id):
			order = real_lock(order_id)
			time.sleep(0.2)
			return order

		return mock.patch('finance.state_machine.lock_order', side_effect=lock_and_hold)

	def test_same_session_settled_twice_at_once(self):
		def settle():
			state_machine.mark_completed(self.order.id, 'sess_1', 10000)

		with self.slow_lock():
			outcomes = run_concurrently(settle, settle)

		self.assertEqual(outcomes, ['ok', 'ok'])
		order = Order.objects.select_related('transaction').get(pk=self.order.pk)
		self.assertEqual(order.status, OrderStatus.CONFIRMED)
		self.assertEqual(order.payment_status.session_ref, 'sess_1')
		self.assertEqual(order.tracking_entries.count(), 2)

	def test_competing_sessions_settle_exactly_once(self):
		with self.slow_lock():
			outcomes = run_concurrently(
				lambda: state_machine.mark_completed(self.order.id, 'sess_1', 10000),
				lambda: state_machine.mark_completed(self.order.id, 'sess_2', 10000),
			)

		self.assertEqual(sorted(outcomes), ['AlreadySettledError', 'ok'])
		order = Order.objects.get(pk=self.order.pk)
		self.assertEqual(order.tracking_entries.count(), 2)


class CashOnDeliveryTests(FinanceFixtureMixin, TestCase):

	def test_admin_settles_cash_order(self):
		order = self.cod_order()

		with self.assertLogs('storefront.audit', level='INFO') as logs:
			state_machine.mark_cod_settled(order.id, self.admin)

		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.COMPLETED)
		payment = order.payment_status
		self.assertEqual((payment.amount_cents, payment.session_ref), (10000, f'cod-{order.id}'))
		last = order.tracking_entries.order_by('-sequence').first()
		self.assertTrue(last.is_manual)
		self.assertEqual(last.status, OrderStatus.COMPLETED)
		self.assertIn('fin_admin', logs.output[0])

	def test_second_settlement_is_rejected_without_changes(self):
		order = self.cod_order()
		state_machine.mark_cod_settled(order.id, self.admin)
		before = self.reload(order)

		with self.assertRaises(AlreadySettledError):
			state_machine.mark_cod_settled(order.id, self.admin)

		after = self.reload(order)
		self.assertEqual(after.payment_status, before.payment_status)
		self.assertEqual(after.status, OrderStatus.COMPLETED)
		self.assertEqual(after.tracking_entries.count(), before.tracking_entries.count())

	def test_card_orders_cannot_be_cash_settled(self):
		order = self.card_order()
		with self.assertRaises(InvalidPaymentMethodError):
			state_machine.mark_cod_settled(order.id, self.admin)

	def test_canceled_cash_order_cannot_be_settled(self):
		order = self.cod_order()
		reconciliation.set_order_status(order.id, self.admin, OrderStatus.CANCELED)
		with self.assertRaises(InvalidStateTransitionError):
			state_machine.mark_cod_settled(order.id, self.admin)
		self.assertEqual(self.reload(order).payment_status, PaymentPending())


class AdminReconciliationTests(FinanceFixtureMixin, TestCase):

	def test_non_admins_are_forbidden_everywhere(self):
		order = self.cod_order()
		calls = [
			lambda: state_machine.mark_cod_settled(order.id, self.customer),
			lambda: reconciliation.force_complete(order.id, self.customer),
			lambda: reconciliation.set_order_status(order.id, self.customer, OrderStatus.CANCELED),
			lambda: reconciliation.annotate_tracking(order.id, self.customer, 'hello'),
		]
		for call in calls:
			with self.assertRaises(ForbiddenError):
				call()
		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.PENDING)
		self.assertEqual(order.tracking_entries.count(), 1)

	def test_role_is_read_from_database(self):
		order = self.cod_order()
		stale = get_user_model().objects.get(pk=self.admin.pk)
		get_user_model().objects.filter(pk=self.admin.pk).update(user_type='customer')

		with self.assertRaises(ForbiddenError):
			reconciliation.annotate_tracking(order.id, stale, 'hello')

	def test_force_complete_appends_manual_override_entry(self):
		order = self.card_order()

		with self.assertLogs('storefront.audit', level='WARNING'):
			reconciliation.force_complete(order.id, self.admin, 'paid at counter')

		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.COMPLETED)
		self.assertEqual(order.payment_status, PaymentPending())
		last = order.tracking_entries.order_by('-sequence').first()
		self.assertTrue(last.is_manual)
		self.assertIn('override', last.note)
		self.assertIn('paid at counter', last.note)

	def test_force_complete_rejects_terminal_orders(self):
		order = self.card_order()
		reconciliation.set_order_status(order.id, self.admin, OrderStatus.EXPIRED)
		with self.assertRaises(InvalidStateTransitionError):
			reconciliation.force_complete(order.id, self.admin)

	def test_set_status_transition_table(self):
		order = self.card_order()
		with self.assertRaises(InvalidStateTransitionError):
			reconciliation.set_order_status(order.id, self.admin, OrderStatus.CONFIRMED)

		state_machine.mark_completed(order.id, 'sess_1', 10000)
		reconciliation.set_order_status(order.id, self.admin, OrderStatus.COMPLETED, 'Picked up')

		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.COMPLETED)
		self.assertEqual(order.tracking_entries.order_by('-sequence').first().note, 'Picked up')

	def test_confirmed_cannot_complete_without_payment(self):
		order = self.card_order()
		Order.objects.filter(pk=order.pk).update(status=OrderStatus.CONFIRMED)
		with self.assertRaises(InvalidStateTransitionError):
			reconciliation.set_order_status(order.id, self.admin, OrderStatus.COMPLETED)

	def test_annotation_keeps_status(self):
		order = self.card_order()
		reconciliation.annotate_tracking(order.id, self.admin, 'Out of coriander, substituted')

		entries = list(self.reload(order).tracking_entries.order_by('sequence'))
		self.assertEqual(len(entries), 2)
		self.assertEqual(entries[-1].status, OrderStatus.PENDING)
		self.assertTrue(entries[-1].is_manual)

		with self.assertRaises(ValidationError):
			reconciliation.annotate_tracking(order.id, self.admin, '   ')


class CheckoutBrokerTests(FinanceFixtureMixin, TestCase):

	def make_broker(self, clock=None):
		clock = clock or FakeClock()
		return CheckoutBroker(provider=FakeProvider(), sleep=clock.sleep, clock=clock)

	def test_create_session_uses_item_snapshot(self):
		order = self.card_order()

		session = self.make_broker().create_session(order.id, self.customer, 'https://shop.test/ok', 'https://shop.test/ko')

		self.assertEqual(session.session_ref, 'sess_1')
		created = FakeProvider.created[0]
		self.assertEqual(created['reference'], str(order.id))
		self.assertEqual(created['items'], [LineItem(name='Alphonso Mango Box', unit_amount_cents=5000, quantity=2)])

	def test_create_session_preconditions(self):
		broker = self.make_broker()
		with self.assertRaises(InvalidPaymentMethodError):
			broker.create_session(self.cod_order().id, self.customer, 'https://a.test', 'https://b.test')

		paid = self.card_order()
		state_machine.mark_completed(paid.id, 'sess_x', 10000)
		with self.assertRaises(AlreadySettledError):
			broker.create_session(paid.id, self.customer, 'https://a.test', 'https://b.test')

		other = get_user_model().objects.create_user(username='someone_else', password='12345678')
		with self.assertRaises(ForbiddenError):
			broker.create_session(self.card_order().id, other, 'https://a.test', 'https://b.test')

	def test_create_session_reopens_failed_payment(self):
		order = self.card_order()
		state_machine.mark_failed(order.id, 'card declined')

		self.make_broker().create_session(order.id, self.customer, 'https://a.test', 'https://b.test')

		order = self.reload(order)
		self.assertEqual(order.payment_status, PaymentPending())
		self.assertEqual(order.tracking_entries.order_by('-sequence').first().note, 'Payment retry started')

	def test_expired_old_session_does_not_fail_the_retry(self):
		order = self.card_order()
		broker = self.make_broker()
		first = broker.create_session(order.id, self.customer, 'https://a.test', 'https://b.test')
		FakeProvider.script = {first.session_ref: [EXPIRED]}
		broker.await_settlement(order.id, first.session_ref, PollPolicy(2, 60))

		second = broker.create_session(order.id, self.customer, 'https://a.test', 'https://b.test')
		self.assertEqual(self.reload(order).transaction.checkout_session_ref, second.session_ref)

		broker.await_settlement(order.id, first.session_ref, PollPolicy(2, 60))

		order = self.reload(order)
		self.assertEqual(order.payment_status, PaymentPending())
		self.assertEqual(order.tracking_entries.order_by('-sequence').first().note, 'Payment retry started')

		FakeProvider.script[second.session_ref] = [completed(order, 10000)]
		broker.await_settlement(order.id, second.session_ref, PollPolicy(2, 60))
		self.assertEqual(self.reload(order).status, OrderStatus.CONFIRMED)

	def test_provider_error_on_create_propagates(self):
		order = self.card_order()
		broker = self.make_broker()
		with mock.patch.object(FakeProvider, 'create_checkout_session', side_effect=ProviderError('down')):
			with self.assertRaises(ProviderError):
				broker.create_session(order.id, self.customer, 'https://a.test', 'https://b.test')

	def test_poll_translates_provider_states(self):
		order = self.card_order()
		FakeProvider.script = {
			'p': [PENDING],
			'c': [completed(order, 10000)],
			'f': [EXPIRED],
			'bad': [ProviderSessionStatus(state=SESSION_COMPLETED, raw={'amount_total': '10000'})],
		}
		broker = self.make_broker()

		self.assertIsInstance(broker.poll_session_status('p'), SessionPending)
		self.assertEqual(broker.poll_session_status('c').amount_cents, 10000)
		self.assertIsInstance(broker.poll_session_status('f'), SessionFailed)
		with self.assertRaises(ProviderError):
			broker.poll_session_status('bad')

	def test_completed_after_pending_polls_settles_once(self):
		order = self.card_order()
		FakeProvider.script = {'sess_1': [PENDING, PENDING, completed(order, 10000)]}

		with mock.patch('finance.state_machine.mark_completed', wraps=state_machine.mark_completed) as spy:
			outcome = self.make_broker().await_settlement(order.id, 'sess_1', PollPolicy(2, 60))

		self.assertTrue(outcome.resolved)
		self.assertEqual(outcome.attempts, 3)
		spy.assert_called_once_with(order.id, 'sess_1', 10000)
		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.CONFIRMED)
		self.assertEqual(order.tracking_entries.count(), 2)

	def test_provider_error_during_poll_is_retried(self):
		order = self.card_order()
		FakeProvider.script = {'sess_1': [ProviderError('timeout'), completed(order, 10000)]}

		outcome = self.make_broker().await_settlement(order.id, 'sess_1', PollPolicy(2, 60))

		self.assertTrue(outcome.resolved)
		self.assertEqual(outcome.attempts, 2)
		self.assertIsInstance(self.reload(order).payment_status, PaymentCompleted)

	def test_timeout_abandons_poll_and_leaves_order_pending(self):
		order = self.card_order()
		FakeProvider.script = {'sess_1': [PENDING]}

		outcome = self.make_broker().await_settlement(order.id, 'sess_1', PollPolicy(2, 5))

		self.assertFalse(outcome.resolved)
		self.assertEqual(outcome.attempts, 3)
		order = self.reload(order)
		self.assertEqual(order.status, OrderStatus.PENDING)
		self.assertEqual(order.payment_status, PaymentPending())
		self.assertEqual(order.tracking_entries.count(), 1)

	def test_max_attempts_stops_polling(self):
		order = self.card_order()
		FakeProvider.script = {'sess_1': [PENDING]}

		outcome = self.make_broker().await_settlement(order.id, 'sess_1', PollPolicy(2, 600, max_attempts=4))

		self.assertFalse(outcome.resolved)
		self.assertEqual(outcome.attempts, 4)

	def test_expired_session_marks_payment_failed(self):
		order = self.card_order()
		FakeProvider.script = {'sess_1': [EXPIRED]}

		outcome = self.make_broker().await_settlement(order.id, 'sess_1', PollPolicy(2, 60))

		self.assertTrue(outcome.resolved)
		order = self.reload(order)
		self.assertIsInstance(order.payment_status, PaymentFailed)
		self.assertEqual(order.status, OrderStatus.PENDING)

	def test_reloaded_broker_relies_on_idempotence(self):
		order = self.card_order()
		FakeProvider.script = {'sess_1': [completed(order, 10000)]}

		self.make_broker().await_settlement(order.id, 'sess_1', PollPolicy(2, 60))
		self.make_broker().await_settlement(order.id, 'sess_1', PollPolicy(2, 60))

		self.assertEqual(self.reload(order).tracking_entries.count(), 2)

	def test_session_for_another_order_is_rejected(self):
		order = self.card_order()
		other = self.card_order()
		broker = self.make_broker()
		observation = SessionCompleted(amount_cents=10000, raw={'client_reference_id': str(other.id)})

		with self.assertRaises(ProviderError):
			broker.settle_from_observation(order.id, 'sess_1', observation)
		self.assertEqual(self.reload(order).payment_status, PaymentPending())


class StripeProviderTests(TestCase):
	"""HTTP client behaviour with ``requests`` patched out."""

	def make_provider(self, response=None, error=None):
		session = mock.Mock()
		if error is not None:
			session.request.side_effect = error
		else:
			session.request.return_value = response
		provider = StripeProvider(
			secret_key='sk_test_123',
			api_base='https://stripe.test/v1',
			currency='inr',
			allowed_countries=['IN'],
			timeout=5,
			session=session,
		)
		return provider, session

	def response(self, status_code=200, payload=None):
		resp = mock.Mock(status_code=status_code)
		resp.json.return_value = payload
		return resp

	def test_create_session_posts_form_encoded_request(self):
		provider, session = self.make_provider(self.response(payload={'id': 'cs_1', 'url': 'https://checkout.test/cs_1'}))

		result = provider.create_checkout_session(
			[LineItem(name='Rice', unit_amount_cents=5000, quantity=2)],
			'https://shop.test/ok',
			'https://shop.test/ko',
			reference='7',
		)

		self.assertEqual(result, CheckoutSession(session_ref='cs_1', url='https://checkout.test/cs_1'))
		method, url = session.request.call_args.args
		data = session.request.call_args.kwargs['data']
		headers = session.request.call_args.kwargs['headers']
		self.assertEqual((method, url), ('POST', 'https://stripe.test/v1/checkout/sessions'))
		self.assertEqual(headers['Authorization'], 'Bearer sk_test_123')
		self.assertEqual(data['success_url'], 'https://shop.test/ok?session_id={CHECKOUT_SESSION_ID}')
		self.assertEqual(data['cancel_url'], 'https://shop.test/ko')
		self.assertEqual(data['client_reference_id'], '7')
		self.assertEqual(data['line_items[0][price_data][unit_amount]'], 5000)
		self.assertEqual(data['line_items[0][quantity]'], 2)
		self.assertEqual(data['shipping_address_collection[allowed_countries][0]'], 'IN')

	def test_status_mapping(self):
		cases = [
			({'status': 'complete', 'payment_status': 'paid', 'amount_total': 100}, SESSION_COMPLETED),
			({'status': 'expired', 'payment_status': 'unpaid'}, SESSION_FAILED),
			({'status': 'open', 'payment_status': 'unpaid'}, SESSION_PENDING),
		]
		for payload, expected in cases:
			provider, _ = self.make_provider(self.response(payload=payload))
			self.assertEqual(provider.get_session_status('cs_1').state, expected)

	def test_errors_become_provider_errors(self):
		failing = [
			self.make_provider(error=requests.ConnectionError('boom'))[0],
			self.make_provider(self.response(status_code=500, payload={}))[0],
			self.make_provider(self.response(payload={'unexpected': True}))[0],
		]
		bad_json = self.response()
		bad_json.json.side_effect = ValueError('not json')
		failing.append(self.make_provider(bad_json)[0])

		for provider in failing:
			with self.assertRaises(ProviderError):
				provider.get_session_status('cs_1')

	def test_unconfigured_provider(self):
		provider = StripeProvider(secret_key='', session=mock.Mock())
		self.assertFalse(provider.is_configured())
		with self.assertRaises(ProviderError):
			provider.get_session_status('cs_1')


@override_settings(
	ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'],
	PAYMENT_PROVIDER='finance.tests.FakeProvider',
)
class PaymentApiTests(FinanceFixtureMixin, TestCase):

	def setUp(self):
		super().setUp()
		self.client = APIClient()
		self.client.force_authenticate(user=self.customer)

	def test_checkout_then_poll_settles_order(self):
		order = self.card_order()

		res = self.client.post(f'/api/orders/{order.id}/checkout-session/', data={
			'success_url': 'https://shop.test/ok',
			'failure_url': 'https://shop.test/ko',
		}, format='json')
		self.assertEqual(res.status_code, 201)
		session_ref = res.data['session_ref']

		FakeProvider.script = {session_ref: [PENDING]}
		res = self.client.get(f'/api/orders/{order.id}/payment-status/', {'session_id': session_ref})
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['session_state'], 'pending')
		self.assertEqual(res.data['order']['payment_status'], {'state': 'pending'})

		FakeProvider.script = {session_ref: [completed(order, 10000)]}
		for _ in range(2):
			res = self.client.get(f'/api/orders/{order.id}/payment-status/', {'session_id': session_ref})
			self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['order']['status'], 'confirmed')
		self.assertEqual(res.data['order']['payment_status']['amount_cents'], 10000)
		self.assertEqual(len(res.data['order']['tracking']), 2)

	def test_provider_error_is_reported_as_inconclusive(self):
		order = self.card_order()
		FakeProvider.script = {'sess_9': [ProviderError('gateway timeout')]}

		res = self.client.get(f'/api/orders/{order.id}/payment-status/', {'session_id': 'sess_9'})

		self.assertEqual(res.status_code, 200)
		self.assertTrue(res.data['inconclusive'])
		self.assertEqual(res.data['session_state'], 'pending')

	def test_session_id_is_required(self):
		order = self.card_order()
		res = self.client.get(f'/api/orders/{order.id}/payment-status/')
		self.assertEqual(res.status_code, 400)

	def test_cash_order_checkout_is_rejected(self):
		order = self.cod_order()
		res = self.client.post(f'/api/orders/{order.id}/checkout-session/', data={
			'success_url': 'https://shop.test/ok',
			'failure_url': 'https://shop.test/ko',
		}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['detail'].code, 'invalid_payment_method')

	@override_settings(PAYMENT_PROVIDER='finance.providers.StripeProvider', STRIPE_SECRET_KEY='')
	def test_configured_endpoint(self):
		res = APIClient().get('/api/payments/configured/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data, {'configured': False, 'currency': 'inr'})
