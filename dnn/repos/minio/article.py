"""
Minio implementation of ArticleRepository.

The article aggregate (assignment and votes included) is one JSON object in
the "articles" bucket, so a save replaces it atomically.
"""

import logging
import uuid
from typing import Optional

from dnn.domain import Article
from dnn.repositories import ArticleRepository
from .client import MinioClient, MinioRepositoryMixin


class MinioArticleRepository(ArticleRepository, MinioRepositoryMixin):
    """Articles persisted as JSON documents keyed by article_id."""

    def __init__(self, client: MinioClient) -> None:
        self.client = client
        self.logger = logging.getLogger("MinioArticleRepository")
        self.bucket_name = "articles"
        self.ensure_buckets_exist([self.bucket_name])

    async def get(self, article_id: str) -> Optional[Article]:
        return self.get_json_object(
            bucket_name=self.bucket_name,
            object_name=article_id,
            model_class=Article,
            extra_log_data={"article_id": article_id},
        )

    async def save(self, article: Article) -> None:
        self.put_json_object(
            bucket_name=self.bucket_name,
            object_name=article.article_id,
            model=article,
            extra_log_data={
                "article_id": article.article_id,
                "status": article.status.value,
                "votes_cast": len(article.votes),
            },
        )

    async def generate_id(self) -> str:
        return f"article-{uuid.uuid4()}"
