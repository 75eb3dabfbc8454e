"""SQL queries for the task lifecycle."""

_TASK_FIELDS = (
    "task_id",
    "title",
    "description",
    "status",
    "quantity",
    "price_per_unit",
    "unit",
    "longitude",
    "latitude",
    "category",
    "subcategory",
    "task_type",
    "quality",
    "priority",
    "skills",
    "start_date",
    "end_date",
    "client_id",
    "provider_id",
    "rejected_by_provider",
    "rating",
    "feedback",
    "created_at",
    "updated_at",
)

TASK_COLUMNS = ",\n        ".join(_TASK_FIELDS)

# Same columns qualified with the "t" alias, for joins against users
T_TASK_COLUMNS = ",\n        ".join(f"t.{field}" for field in _TASK_FIELDS)

INSERT_TASK = f"""
    INSERT INTO marketplace.tasks (
        title, description, status, quantity, price_per_unit, unit,
        longitude, latitude, category, subcategory, task_type, quality,
        priority, skills, start_date, end_date, client_id
    )
    VALUES (
        %(title)s, %(description)s, 'PENDING', %(quantity)s, %(price_per_unit)s, %(unit)s,
        %(longitude)s, %(latitude)s, %(category)s, %(subcategory)s, %(task_type)s, %(quality)s,
        %(priority)s, %(skills)s, %(start_date)s, %(end_date)s, %(client_id)s
    )
    RETURNING {TASK_COLUMNS}
"""

# Task visible to its client, its assigned provider, or any provider while unassigned
GET_TASK_FOR_ACTOR = f"""
    SELECT {TASK_COLUMNS}
    FROM marketplace.tasks
    WHERE task_id = %(task_id)s
      AND (
        client_id = %(user_id)s
        OR provider_id = %(user_id)s
        OR (%(is_provider)s AND status = 'PENDING' AND provider_id IS NULL)
      )
"""

# Task as seen by one of its parties (client or assigned provider)
GET_TASK_FOR_PARTY = f"""
    SELECT {TASK_COLUMNS}
    FROM marketplace.tasks
    WHERE task_id = %s
      AND (client_id = %s OR provider_id = %s)
"""

GET_TASK_STATUS = """
    SELECT task_id, status, provider_id
    FROM marketplace.tasks
    WHERE task_id = %s
"""

GET_TASKS_FOR_CLIENT = f"""
    SELECT
        {T_TASK_COLUMNS},
        p.name AS provider_name,
        p.email AS provider_email
    FROM marketplace.tasks t
    LEFT JOIN marketplace.users p ON p.user_id = t.provider_id
    WHERE t.client_id = %s
    ORDER BY t.created_at DESC, t.task_id DESC
"""

GET_TASKS_FOR_PROVIDER = f"""
    SELECT
        {T_TASK_COLUMNS},
        c.name AS client_name,
        c.email AS client_email
    FROM marketplace.tasks t
    INNER JOIN marketplace.users c ON c.user_id = t.client_id
    WHERE t.provider_id = %s
    ORDER BY t.created_at DESC, t.task_id DESC
"""

# Compare-and-swap: only an unassigned PENDING task can be taken
ACCEPT_TASK = f"""
    UPDATE marketplace.tasks
    SET
        provider_id = %s,
        status = 'ACCEPTED',
        updated_at = CURRENT_TIMESTAMP
    WHERE task_id = %s
      AND status = 'PENDING'
      AND provider_id IS NULL
    RETURNING {TASK_COLUMNS}
"""

# Client assigns a provider to its own unassigned PENDING task
ASSIGN_TASK = f"""
    UPDATE marketplace.tasks
    SET
        provider_id = %s,
        status = 'ACCEPTED',
        updated_at = CURRENT_TIMESTAMP
    WHERE task_id = %s
      AND client_id = %s
      AND status = 'PENDING'
      AND provider_id IS NULL
    RETURNING {TASK_COLUMNS}
"""

GET_PROVIDER_ROLE = """
    SELECT user_id, role
    FROM marketplace.users
    WHERE user_id = %s
"""

# Compare-and-swap on the current status
TRANSITION_TASK = f"""
    UPDATE marketplace.tasks
    SET
        status = %(target)s,
        rejected_by_provider = rejected_by_provider OR %(rejected_by_provider)s,
        rating = COALESCE(%(rating)s, rating),
        feedback = COALESCE(%(feedback)s, feedback),
        updated_at = CURRENT_TIMESTAMP
    WHERE task_id = %(task_id)s
      AND status = %(current)s
      AND (client_id = %(user_id)s OR provider_id = %(user_id)s)
    RETURNING {TASK_COLUMNS}
"""

# Rejection removes the task outright (no CANCELLED record is kept)
REJECT_TASK = """
    DELETE FROM marketplace.tasks
    WHERE task_id = %s
      AND status = 'PENDING'
      AND provider_id IS NULL
    RETURNING task_id
"""

# Template for client edits; {assignments} is built from a fixed column whitelist
EDIT_PENDING_TASK = """
    UPDATE marketplace.tasks
    SET {assignments}, updated_at = CURRENT_TIMESTAMP
    WHERE task_id = %(task_id)s
      AND client_id = %(client_id)s
      AND status = 'PENDING'
    RETURNING {columns}
"""
