"""SQL queries for authentication and user management."""

_USER_COLUMNS = """
        user_id,
        email,
        password_hash,
        name,
        role,
        skills,
        longitude,
        latitude,
        rating,
        response_rate,
        created_at,
        updated_at
"""

# Query to get user by email
GET_USER_BY_EMAIL = f"""
    SELECT {_USER_COLUMNS}
    FROM marketplace.users
    WHERE email = %s
"""

# Query to get user by ID
GET_USER_BY_ID = f"""
    SELECT {_USER_COLUMNS}
    FROM marketplace.users
    WHERE user_id = %s
"""

# Query to create a new user
INSERT_USER = """
    INSERT INTO marketplace.users (
        email, password_hash, name, role, skills, longitude, latitude, created_at, updated_at
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    RETURNING user_id
"""

# Query to update editable profile fields; NULL keeps the current value
UPDATE_USER_PROFILE = f"""
    UPDATE marketplace.users
    SET
        name = COALESCE(%s, name),
        email = COALESCE(%s, email),
        skills = COALESCE(%s, skills),
        longitude = COALESCE(%s, longitude),
        latitude = COALESCE(%s, latitude),
        updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
    RETURNING {_USER_COLUMNS}
"""
