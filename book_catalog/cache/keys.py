"""
캐시 키 생성 도우미
"""

ITEM_PREFIX = "item"
COLLECTION_PREFIX = "collection"
COLLECTION_VERSION_KEY = f"{COLLECTION_PREFIX}:version"


class CacheKey:
    """캐시 키 생성 도우미"""

    @staticmethod
    def for_item(book_id: str) -> str:
        """단일 도서용 캐시 키 생성"""
        return f"{ITEM_PREFIX}:{book_id}"

    @staticmethod
    def for_collection(version: int, page: int, limit: int) -> str:
        """필터 없는 목록 페이지용 캐시 키 생성

        버전이 키에 포함되므로 버전이 올라가면 이전 페이지 항목은
        조회되지 않고 TTL에 따라 만료된다.
        """
        return f"{COLLECTION_PREFIX}:v{version}:page:{page}:limit:{limit}"

    @staticmethod
    def collection_version() -> str:
        """목록 버전 카운터 키"""
        return COLLECTION_VERSION_KEY

    @staticmethod
    def scope(key: str) -> str:
        """메트릭 라벨용 키 범주"""
        return key.split(':', 1)[0]
