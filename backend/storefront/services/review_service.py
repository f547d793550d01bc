from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from ..db import commit
from ..errors import BadRequest, NotFound
from ..models import Product, Review, User
from ..observability.logging import get_logger
from ..repositories.query_builder import query_builder
from ..schemas.review import ReviewCreate, ReviewQuery, ReviewUpdate

log = get_logger("reviews")

SEARCH_FIELDS = ("comment", "title")


class ReviewService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, data: ReviewCreate, *, user_id: int) -> Review:
        if self.db.get(User, user_id) is None:
            raise BadRequest(message=f"User with ID {user_id} does not exist", entity="User")
        if self.db.get(Product, data.product_id) is None:
            raise BadRequest(
                message=f"Product with ID {data.product_id} does not exist",
                entity="Product",
                key={"product_id": data.product_id},
            )

        review = Review(**data.model_dump(exclude={"user_id"}), user_id=user_id)
        self.db.add(review)
        commit(self.db, entity="Review")
        log.info("review_created", review_id=review.review_id, product_id=review.product_id, rating=review.rating)
        return review

    def find_all(self, query: ReviewQuery) -> dict[str, Any]:
        qb = query_builder
        stmt = select(Review)
        stmt = qb.apply_search(stmt, query.search, SEARCH_FIELDS, Review)
        stmt = qb.apply_string_filters(
            stmt,
            Review,
            query.model_dump(include={"user_id", "product_id", "rating", "is_verified_purchase"}),
        )
        stmt = qb.apply_numeric_filters(stmt, Review, "rating", query.min_rating, query.max_rating)
        stmt = qb.apply_date_filters(stmt, Review, query.created_after, query.created_before)
        stmt = qb.apply_includes(stmt, query.include, Review)
        stmt = qb.apply_sorting(stmt, query, Review)
        return qb.paginate(self.db, stmt, query)

    def find_one(self, review_id: int, *, with_relations: bool = True) -> Review:
        stmt = select(Review).where(Review.review_id == review_id)
        if with_relations:
            stmt = stmt.options(
                selectinload(Review.user), selectinload(Review.product)
            ).execution_options(populate_existing=True)
        review = self.db.scalar(stmt)
        if review is None:
            raise NotFound(
                message=f"Review with ID {review_id} not found",
                entity="Review",
                key={"review_id": review_id},
            )
        return review

    def find_by_product(self, product_id: int) -> list[Review]:
        stmt = (
            select(Review)
            .where(Review.product_id == product_id)
            .options(selectinload(Review.user))
            .order_by(Review.created_at.desc(), Review.review_id.desc())
        )
        return list(self.db.scalars(stmt).all())

    def find_by_user(self, user_id: int) -> list[Review]:
        stmt = (
            select(Review)
            .where(Review.user_id == user_id)
            .options(selectinload(Review.product))
            .order_by(Review.created_at.desc(), Review.review_id.desc())
        )
        return list(self.db.scalars(stmt).all())

    def product_stats(self, product_id: int) -> dict[str, Any]:
        rows = self.db.execute(
            select(Review.rating, func.count())
            .where(Review.product_id == product_id)
            .group_by(Review.rating)
        ).all()

        distribution = {str(r): 0 for r in range(1, 6)}
        total = 0
        weighted = 0
        for rating, count in rows:
            distribution[str(rating)] = int(count)
            total += int(count)
            weighted += int(rating) * int(count)

        average = 0
        if total:
            # Half-up to one decimal: 4.25 -> 4.3.
            mean = Decimal(weighted) / Decimal(total)
            average = float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
        return {
            "average_rating": average,
            "total_reviews": total,
            "rating_distribution": distribution,
        }

    def update(self, review_id: int, data: ReviewUpdate) -> Review:
        review = self.find_one(review_id, with_relations=False)
        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None and key in ("rating", "is_verified_purchase"):
                continue
            setattr(review, key, value)
        commit(self.db, entity="Review")
        log.info("review_updated", review_id=review_id, fields=sorted(changes))
        return review

    def remove(self, review_id: int) -> None:
        review = self.find_one(review_id, with_relations=False)
        self.db.delete(review)
        commit(self.db, entity="Review")
        log.info("review_deleted", review_id=review_id)

    def mark_helpful(self, review_id: int) -> Review:
        result = self.db.execute(
            update(Review)
            .where(Review.review_id == review_id)
            .values(helpful_votes=Review.helpful_votes + 1)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            self.db.rollback()
            raise NotFound(
                message=f"Review with ID {review_id} not found",
                entity="Review",
                key={"review_id": review_id},
            )
        commit(self.db, entity="Review")
        return self.find_one(review_id)
