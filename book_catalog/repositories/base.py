"""
저장소 베이스 클래스
카탈로그 서비스가 의존하는 영속 저장소 인터페이스
"""
from abc import ABC, abstractmethod
from typing import List, Tuple

from ..models import BookRecord, FilterCriteria, Pagination, UpdateBookRequest


class BookRepository(ABC):
    """도서 저장소 인터페이스

    Raises ``NotFoundError`` for unknown ids and ``RepositoryError`` for
    storage failures.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """저장소 이름"""
        pass

    @abstractmethod
    async def list(self, pagination: Pagination) -> Tuple[List[BookRecord], int]:
        """페이지 조회, (도서 목록, 전체 개수) 반환"""
        pass

    @abstractmethod
    async def get_by_id(self, book_id: str) -> BookRecord:
        pass

    @abstractmethod
    async def create(self, title: str, author: str, year: int) -> BookRecord:
        pass

    @abstractmethod
    async def update(self, book_id: str, patch: UpdateBookRequest) -> BookRecord:
        pass

    @abstractmethod
    async def delete(self, book_id: str) -> None:
        pass

    @abstractmethod
    async def search(self, criteria: FilterCriteria) -> List[BookRecord]:
        """필터 검색 (최신순)"""
        pass

    async def initialize(self):
        """연결 및 스키마 준비"""
        pass

    async def ping(self) -> bool:
        return True

    async def close(self):
        """리소스 정리"""
        pass
