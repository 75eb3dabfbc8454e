"""SQL queries for provider search and the open-task feed.

The optional bounding box is an index-friendly prefilter only; exact
haversine distances are checked in Python afterwards. Passing NULL bounds
disables it.
"""

from marketplace.tasks.queries import T_TASK_COLUMNS

_BOX_FILTER = """
      AND (
        %(min_lat)s IS NULL
        OR (
          {alias}.latitude BETWEEN %(min_lat)s AND %(max_lat)s
          AND {alias}.longitude BETWEEN %(min_lng)s AND %(max_lng)s
        )
      )
"""

_USER_BOX_FILTER = _BOX_FILTER.format(alias="u")
_TASK_BOX_FILTER = _BOX_FILTER.format(alias="t")

FIND_PROVIDERS_BY_SKILL = f"""
    SELECT
        u.user_id,
        u.name,
        u.email,
        u.role,
        u.skills,
        u.longitude,
        u.latitude,
        u.rating,
        u.response_rate,
        u.created_at
    FROM marketplace.users u
    WHERE u.role = 'PROVIDER'
      AND %(category)s = ANY(u.skills)
      {_USER_BOX_FILTER}
    ORDER BY u.user_id
"""

# Unassigned tasks for the feed; other statuses only for tasks the provider holds
FIND_TASKS_FOR_PROVIDER = f"""
    SELECT
        {T_TASK_COLUMNS},
        c.name AS client_name
    FROM marketplace.tasks t
    INNER JOIN marketplace.users c ON c.user_id = t.client_id
    WHERE t.status = %(status)s
      AND (
        (t.status = 'PENDING' AND t.provider_id IS NULL)
        OR t.provider_id = %(provider_id)s
      )
      AND (%(categories)s IS NULL OR t.category = ANY(%(categories)s))
      {_TASK_BOX_FILTER}
    ORDER BY t.created_at DESC, t.task_id DESC
"""
