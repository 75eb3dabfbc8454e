"""SQL queries for reviews and provider reputation."""

# The task a reviewer may review: their own task, with its provider and status
GET_REVIEWABLE_TASK = """
    SELECT task_id, client_id, provider_id, status
    FROM marketplace.tasks
    WHERE task_id = %s
      AND client_id = %s
"""

# Serializes concurrent reviews of the same provider for the rating recompute
LOCK_PROVIDER_ROW = """
    SELECT user_id
    FROM marketplace.users
    WHERE user_id = %s
    FOR UPDATE
"""

# One review per (reviewer, task); a duplicate inserts nothing and returns no row
INSERT_REVIEW = """
    INSERT INTO marketplace.reviews (
        reviewer_id, provider_id, task_id, rating, comment, sentiment
    )
    VALUES (%s, %s, %s, %s, %s, %s)
    ON CONFLICT ON CONSTRAINT uq_reviews_reviewer_task DO NOTHING
    RETURNING
        review_id,
        reviewer_id,
        provider_id,
        task_id,
        rating,
        comment,
        sentiment,
        created_at
"""

# Provider rating is always the mean of the full review set
RECOMPUTE_PROVIDER_RATING = """
    UPDATE marketplace.users
    SET
        rating = (
            SELECT COALESCE(AVG(r.rating), 0)
            FROM marketplace.reviews r
            WHERE r.provider_id = %s
        ),
        updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
    RETURNING rating
"""

GET_REVIEWS_FOR_USER = """
    SELECT
        r.review_id,
        r.reviewer_id,
        u.name AS reviewer_name,
        r.provider_id,
        r.task_id,
        r.rating,
        r.comment,
        r.sentiment,
        r.created_at
    FROM marketplace.reviews r
    LEFT JOIN marketplace.users u ON u.user_id = r.reviewer_id
    WHERE r.provider_id = %s
    ORDER BY r.created_at DESC, r.review_id DESC
"""

GET_REVIEWS_FOR_PROVIDERS = """
    SELECT provider_id, sentiment, created_at
    FROM marketplace.reviews
    WHERE provider_id = ANY(%s)
"""

GET_COMPLETED_TASK_COUNTS = """
    SELECT provider_id, COUNT(*) AS completed_tasks
    FROM marketplace.tasks
    WHERE provider_id = ANY(%s)
      AND status = 'COMPLETED'
    GROUP BY provider_id
"""
