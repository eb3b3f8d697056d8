# tests/test_api.py
"""
HTTP API 테스트
"""
import asyncio

import pytest
from starlette.testclient import TestClient

from book_catalog.api import create_app, responses
from book_catalog.cache import CacheKey, CacheManager
from book_catalog.config import Settings
from book_catalog.repositories import InMemoryBookRepository

DUNE = {'title': 'Dune', 'author': 'Frank Herbert', 'year': 1965}


def create(client: TestClient, **overrides) -> dict:
    response = client.post('/api/books', json={**DUNE, **overrides})
    assert response.status_code == 200
    return response.json()['data']


class TestBooksAPI:
    """도서 CRUD 엔드포인트 테스트"""

    def test_create_book(self, client):
        response = client.post('/api/books', json=DUNE)

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['message'] == "Book created successfully"
        assert body['data']['id']
        assert body['data']['title'] == 'Dune'
        assert body['data']['created_at']
        assert body['data']['updated_at'] is None

    def test_create_with_empty_title(self, client):
        response = client.post('/api/books', json={**DUNE, 'title': ''})

        assert response.status_code == 400
        body = response.json()
        assert body['success'] is False
        assert body['code'] == 'BAD_REQUEST'

    @pytest.mark.parametrize('year', ["1965", True])
    def test_create_with_non_integer_year(self, client, year):
        response = client.post('/api/books', json={**DUNE, 'year': year})

        assert response.status_code == 400
        assert response.json()['details']['field'] == 'year'

    def test_create_with_invalid_json(self, client):
        response = client.post(
            '/api/books',
            content=b'{"title": ',
            headers={'Content-Type': 'application/json'}
        )

        assert response.status_code == 400
        assert response.json()['error'] == "invalid JSON format"

    def test_get_unknown_book(self, client):
        response = client.get('/api/books/does-not-exist')

        assert response.status_code == 404
        assert response.json()['code'] == 'NOT_FOUND'

    def test_get_book(self, client):
        book = create(client)

        response = client.get(f"/api/books/{book['id']}")

        assert response.status_code == 200
        assert response.json()['data'] == book

    def test_list_second_page(self, client):
        for i in range(15):
            create(client, title=f"Book {i}")

        response = client.get('/api/books', params={'page': 2, 'limit': 10})

        assert response.status_code == 200
        body = response.json()
        assert len(body['data']['data']) == 5
        assert body['data']['meta'] == {
            'current_page': 2,
            'per_page': 10,
            'total_pages': 2,
            'total_items': 15,
            'has_next': False,
            'has_prev': True,
        }

    def test_list_empty_catalog(self, client):
        response = client.get('/api/books')

        assert response.status_code == 200
        assert response.json()['data']['data'] == []
        assert response.json()['data']['meta']['total_pages'] == 1

    def test_list_rejects_large_limit(self, client):
        response = client.get('/api/books', params={'limit': 20000})

        assert response.status_code == 400
        assert response.json()['code'] == 'BAD_REQUEST'

    def test_filtered_list(self, client):
        create(client)
        create(client, title='Animal Farm', author='George Orwell', year=1945)

        response = client.get('/api/books', params={'author': 'orwell'})

        assert response.status_code == 200
        data = response.json()['data']
        assert [b['title'] for b in data['data']] == ['Animal Farm']
        assert data['meta']['total_items'] == 1

    def test_filter_with_invalid_year(self, client):
        response = client.get('/api/books', params={'year': 'abc'})
        assert response.status_code == 400

    def test_list_reflects_create(self, client):
        """목록 캐시 후 생성하면 같은 페이지가 새 개수를 반영"""
        create(client)
        first = client.get('/api/books').json()['data']['meta']['total_items']

        create(client, title='Children of Dune')
        second = client.get('/api/books').json()['data']['meta']['total_items']

        assert (first, second) == (1, 2)

    def test_update_book(self, client):
        book = create(client)

        response = client.put(f"/api/books/{book['id']}", json={'year': 1966})

        assert response.status_code == 200
        body = response.json()
        assert body['message'] == "Book updated successfully"
        assert body['data']['year'] == 1966
        assert body['data']['title'] == 'Dune'
        assert body['data']['updated_at'] is not None
        assert client.get(f"/api/books/{book['id']}").json()['data']['year'] == 1966

    def test_patch_book(self, client):
        book = create(client)

        response = client.patch(f"/api/books/{book['id']}", json={'title': 'Dune Messiah'})

        assert response.status_code == 200
        assert response.json()['data']['title'] == 'Dune Messiah'

    def test_update_without_changes(self, client):
        book = create(client)

        response = client.put(f"/api/books/{book['id']}", json={'title': 'Dune'})

        assert response.status_code == 400
        assert response.json()['error'] == "no changes provided"

    def test_update_unknown_book(self, client):
        response = client.put('/api/books/does-not-exist', json={'title': 'X'})
        assert response.status_code == 404

    def test_delete_book(self, client):
        book = create(client)

        response = client.delete(f"/api/books/{book['id']}")

        assert response.status_code == 200
        assert response.json() == {'success': True, 'message': "Book deleted successfully"}
        assert client.get(f"/api/books/{book['id']}").status_code == 404

    def test_delete_unknown_book(self, client):
        assert client.delete('/api/books/does-not-exist').status_code == 404

    def test_method_not_allowed(self, client):
        response = client.delete('/api/books')

        assert response.status_code == 405
        body = response.json()
        assert body['code'] == 'METHOD_NOT_ALLOWED'
        assert body['error'] == "Method not allowed"

    def test_unknown_route(self, client):
        response = client.get('/api/authors')

        assert response.status_code == 404
        assert response.json()['code'] == 'NOT_FOUND'


class TestErrorBoundary:
    """요청 단위 에러 처리 테스트"""

    def test_request_id_echoed(self, client):
        response = client.get('/api/books', headers={'X-Request-ID': 'req-123'})
        assert response.headers['X-Request-ID'] == 'req-123'

    def test_request_id_generated(self, client):
        response = client.get('/api/books/missing')

        assert response.headers['X-Request-ID']
        assert response.json()['request_id'] == response.headers['X-Request-ID']

    def test_unexpected_error_returns_500(self, settings):
        class ExplodingRepository(InMemoryBookRepository):
            async def list(self, pagination):
                raise RuntimeError("boom")

        app = create_app(settings, repository=ExplodingRepository(), cache=CacheManager(None))
        with TestClient(app) as client:
            response = client.get('/api/books')

        assert response.status_code == 500
        body = response.json()
        assert body['success'] is False
        assert body['code'] == 'INTERNAL_ERROR'
        assert body['error'] == "internal server error"

    def test_request_timeout_returns_500(self):
        class SlowRepository(InMemoryBookRepository):
            async def list(self, pagination):
                await asyncio.sleep(1)
                return await super().list(pagination)

        settings = Settings(CATALOG_REQUEST_TIMEOUT=0.05, CATALOG_REDIS_URL='')
        app = create_app(settings, repository=SlowRepository(), cache=CacheManager(None))
        with TestClient(app) as client:
            response = client.get('/api/books')

        assert response.status_code == 500
        assert response.json()['code'] == 'INTERNAL_ERROR'

    def test_undeliverable_hit_is_discarded(self, client, local_cache, monkeypatch):
        """캐시 히트 응답 직렬화 실패 시 키 삭제"""
        book = create(client)
        client.get(f"/api/books/{book['id']}")

        def broken_success(*args, **kwargs):
            raise RuntimeError("encoder failure")

        monkeypatch.setattr(responses, 'success', broken_success)
        response = client.get(f"/api/books/{book['id']}")

        assert response.status_code == 500
        assert asyncio.run(local_cache.get(CacheKey.for_item(book['id']))) is None


class TestOperationalEndpoints:
    """운영 엔드포인트 테스트"""

    def test_root(self, client):
        response = client.get('/')

        assert response.status_code == 200
        assert response.text == "Library API v1.0"

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'healthy'
        assert {c['name'] for c in body['components']} == {'cache', 'repository'}

    def test_health_unhealthy_repository(self, settings):
        class DownRepository(InMemoryBookRepository):
            async def ping(self):
                return False

        app = create_app(settings, repository=DownRepository())
        with TestClient(app) as client:
            response = client.get('/health')

        assert response.status_code == 503
        assert response.json()['status'] == 'unhealthy'

    def test_metrics(self, client):
        client.get('/api/books')

        response = client.get('/metrics')

        assert response.status_code == 200
        assert 'catalog_http_requests_total' in response.text
