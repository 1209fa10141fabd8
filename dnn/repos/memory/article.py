"""
Memory implementation of ArticleRepository.
"""

import logging
from typing import Any, Dict, Optional

from dnn.domain import Article
from dnn.repositories import ArticleRepository
from .base import MemoryRepositoryMixin

logger = logging.getLogger(__name__)


class MemoryArticleRepository(
    ArticleRepository, MemoryRepositoryMixin[Article]
):
    """
    Memory implementation of ArticleRepository using Python dictionaries.

    Articles are stored as whole aggregates (assignment and votes included)
    keyed by article_id.
    """

    def __init__(self) -> None:
        self.logger = logger
        self.entity_name = "Article"
        self.storage_dict: Dict[str, Article] = {}

        logger.debug("Initializing MemoryArticleRepository")

    async def get(self, article_id: str) -> Optional[Article]:
        return self.get_entity(article_id)

    async def save(self, article: Article) -> None:
        self.save_entity(article, "article_id")

    async def generate_id(self) -> str:
        return self.generate_entity_id("article")

    def _add_entity_specific_log_data(
        self, entity: Article, log_data: Dict[str, Any]
    ) -> None:
        log_data["status"] = entity.status.value
        log_data["votes_cast"] = len(entity.votes)
