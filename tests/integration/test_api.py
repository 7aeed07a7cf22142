"""
Integration tests for the JSON blueprints.
"""

from conftest import BARTENDER, FOOD_ITEM, SCENARIO_CONFIG


def _create_inquiry(client, **fields):
    data = {'name': 'Ana Torres', 'email': 'ana@example.com'}
    data.update(fields)
    response = client.post('/inquiries', json=data)
    assert response.status_code == 201
    return response.get_json()


def _create_quote(client, inquiry_id):
    payload = dict(SCENARIO_CONFIG, inquiry_id=inquiry_id, line_items=[FOOD_ITEM, BARTENDER])
    response = client.post('/quotes', json=payload)
    assert response.status_code == 201
    return response.get_json()


class TestHealth:
    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_metrics(self, client):
        client.get('/health')
        response = client.get('/metrics')
        assert response.status_code == 200
        assert b'http_requests_total' in response.data


class TestQuoteEndpoints:
    """End-to-end quote flow over HTTP."""

    def test_create_send_and_pay(self, client):
        inquiry = _create_inquiry(client)
        quote = _create_quote(client, inquiry['id'])

        assert quote['status'] == 'DRAFT'
        assert quote['summary']['grand_total'] == '174.25'
        assert quote['summary']['deposit'] == '87.13'

        response = client.post(f"/quotes/{quote['id']}/send", json={'version': quote['version']})
        assert response.status_code == 200
        assert response.get_json()['status'] == 'SENT'
        assert client.get(f"/inquiries/{inquiry['id']}").get_json()['status'] == 'QUOTED'

        client.post(f"/quotes/{quote['id']}/accept")
        response = client.post(f"/quotes/{quote['id']}/payments", json={'amount': 200, 'method': 'CARD'})
        body = response.get_json()

        assert response.status_code == 201
        assert body['summary']['balance'] == '-25.75'
        assert body['warnings'][0]['type'] == 'overpayment'
        assert body['proposed_status'] == 'PAID'

        response = client.post(f"/quotes/{quote['id']}/payment-status", json={'status': 'PAID'})
        assert response.get_json()['status'] == 'PAID'

    def test_send_twice_is_conflict(self, client):
        inquiry = _create_inquiry(client)
        quote = _create_quote(client, inquiry['id'])
        client.post(f"/quotes/{quote['id']}/send")

        response = client.post(f"/quotes/{quote['id']}/send")
        body = response.get_json()

        assert response.status_code == 409
        assert body['status'] == 'error'
        assert body['current'] == 'SENT'
        assert body['requested'] == 'SENT'

    def test_stale_version(self, client):
        inquiry = _create_inquiry(client)
        quote = _create_quote(client, inquiry['id'])
        client.patch(f"/quotes/{quote['id']}", json={'notes': 'first', 'version': 1})

        response = client.patch(f"/quotes/{quote['id']}", json={'notes': 'second', 'version': 1})

        assert response.status_code == 409
        assert response.get_json()['actual_version'] == 2

    def test_validation_error(self, client):
        inquiry = _create_inquiry(client)
        bad_item = dict(FOOD_ITEM, unit_price=-1)

        response = client.post('/quotes', json={'inquiry_id': inquiry['id'], 'line_items': [bad_item]})

        assert response.status_code == 400
        assert response.get_json()['field'] == 'unit_price'

    def test_unknown_quote(self, client):
        response = client.get('/quotes/12345')
        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'

    def test_revise_and_history(self, client):
        inquiry = _create_inquiry(client)
        quote = _create_quote(client, inquiry['id'])

        response = client.post(f"/quotes/{quote['id']}/revise")
        assert response.status_code == 201
        assert response.get_json()['notes'] == f"Revision of quote #{quote['quote_number']}"

        history = client.get(f"/quotes/{quote['id']}/history").get_json()['history']
        assert [change['to_status'] for change in history] == ['DRAFT']

    def test_list_and_statistics(self, client):
        inquiry = _create_inquiry(client)
        quote = _create_quote(client, inquiry['id'])
        client.post(f"/quotes/{quote['id']}/send")
        client.post(f"/quotes/{quote['id']}/decline", json={'reason': 'Too expensive'})

        listed = client.get('/quotes?status=DECLINED').get_json()['quotes']
        stats = client.get('/quotes/statistics').get_json()

        assert [q['id'] for q in listed] == [quote['id']]
        assert 'Decline reason: Too expensive' in listed[0]['notes']
        assert stats['by_status']['DECLINED'] == 1
        assert stats['acceptance_rate'] == '0.00'


class TestInquiryEndpoints:
    def test_status_notes_and_reactivation(self, client):
        inquiry = _create_inquiry(client)

        response = client.post(f"/inquiries/{inquiry['id']}/status", json={'status': 'LOST'})
        assert response.get_json()['status'] == 'LOST'

        response = client.post(f"/inquiries/{inquiry['id']}/notes", json={'body': 'Budget too low'})
        assert response.status_code == 201

        response = client.post(
            f"/inquiries/{inquiry['id']}/reactivate",
            json={'status': 'CONTACTED', 'reason': 'New budget approved'},
            headers={'X-Actor': 'owner'},
        )
        body = response.get_json()
        assert body['status'] == 'CONTACTED'
        assert [note['body'] for note in body['notes']][0] == 'Budget too low'
        assert len(body['notes']) == 2

    def test_quoted_cannot_be_set_by_hand(self, client):
        inquiry = _create_inquiry(client)
        response = client.post(f"/inquiries/{inquiry['id']}/status", json={'status': 'QUOTED'})
        assert response.status_code == 400

    def test_statistics(self, client):
        _create_inquiry(client, priority='URGENT')
        stats = client.get('/inquiries/statistics').get_json()
        assert stats['by_priority']['URGENT'] == 1
