from __future__ import annotations

ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_ADMIN = "ADMIN"
ROLE_EDITOR = "EDITOR"
ROLE_USER = "USER"

USER_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_EDITOR, ROLE_USER)

# Roles a new account may request at registration
REGISTRATION_ROLES = frozenset({ROLE_USER, ROLE_ADMIN, ROLE_EDITOR})

# Per-operation allow-lists. Membership is exact: no role inherits another's rights.
QUESTION_EDITOR_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_EDITOR})
USER_ADMIN_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})
BADGE_ADMIN_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})
STATS_ADMIN_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})
STREAK_ADMIN_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})

QUESTION_DIFFICULTIES = ("basic", "intermediate", "advanced")
QUESTION_TYPES = ("multiple_choice", "true_false", "fill_in_blank")
QUESTION_STATUSES = ("draft", "review", "active", "archived")
