"""Schema v1 - Initial marketplace schema.

Creates the users directory, swap requests with their two feedback slots,
the notification inbox and admin messages.
"""

UPDATED_AT_FUNCTION = '''
BEGIN
    NEW.updated_at = now();
    RETURN NEW;
END;
'''

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'email', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'password_hash', 'type': 'TEXT', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'location', 'type': 'TEXT'},
                {'name': 'photo', 'type': 'TEXT'},
                {'name': 'skills_offered', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'skills_wanted', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'availability', 'type': 'TEXT', 'nullable': False, 'default': "'flexible'"},
                {'name': 'is_public', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
                {'name': 'is_admin', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'is_banned', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'rating', 'type': 'FLOAT8', 'nullable': False, 'default': '0'},
                {'name': 'review_count', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'joined_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'users_availability_check',
                 'expression': "availability IN ('weekdays', 'weekends', 'evenings', 'flexible')"},
                {'name': 'users_rating_check', 'expression': 'rating >= 0 AND rating <= 5'},
                {'name': 'users_review_count_check', 'expression': 'review_count >= 0'}
            ],
            'indexes': [
                {'name': 'idx_users_skills_offered', 'columns': ['skills_offered'], 'method': 'gin'},
                {'name': 'idx_users_skills_wanted', 'columns': ['skills_wanted'], 'method': 'gin'},
                {'name': 'idx_users_rating', 'columns': ['rating DESC', 'review_count DESC']}
            ]
        },
        {
            'name': 'swap_requests',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'from_user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'to_user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'skill_offered', 'type': 'TEXT', 'nullable': False},
                {'name': 'skill_wanted', 'type': 'TEXT', 'nullable': False},
                {'name': 'message', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'pending'"},
                {'name': 'from_user_rating', 'type': 'INT2'},
                {'name': 'from_user_comment', 'type': 'TEXT'},
                {'name': 'from_user_submitted_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'to_user_rating', 'type': 'INT2'},
                {'name': 'to_user_comment', 'type': 'TEXT'},
                {'name': 'to_user_submitted_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'completed_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'swap_requests_distinct_users', 'expression': 'from_user_id <> to_user_id'},
                {'name': 'swap_requests_status_check',
                 'expression': "status IN ('pending', 'accepted', 'rejected', 'completed', 'cancelled')"},
                {'name': 'swap_requests_completed_at_check',
                 'expression': "(status = 'completed') = (completed_at IS NOT NULL)"},
                {'name': 'swap_requests_from_rating_check',
                 'expression': 'from_user_rating IS NULL OR from_user_rating BETWEEN 1 AND 5'},
                {'name': 'swap_requests_to_rating_check',
                 'expression': 'to_user_rating IS NULL OR to_user_rating BETWEEN 1 AND 5'}
            ],
            'foreign_keys': [
                {'columns': ['from_user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'},
                {'columns': ['to_user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_swap_requests_from_user', 'columns': ['from_user_id', 'status']},
                {'name': 'idx_swap_requests_to_user', 'columns': ['to_user_id', 'status']},
                {'name': 'idx_swap_requests_created', 'columns': ['created_at DESC']},
                # One pending request per unordered pair of users
                {'name': 'idx_swap_requests_pending_pair',
                 'columns': ['LEAST(from_user_id, to_user_id)', 'GREATEST(from_user_id, to_user_id)'],
                 'unique': True,
                 'where': "status = 'pending'"}
            ]
        },
        {
            'name': 'notifications',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'type', 'type': 'TEXT', 'nullable': False},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'message', 'type': 'TEXT', 'nullable': False},
                {'name': 'is_read', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'related_type', 'type': 'TEXT'},
                {'name': 'related_id', 'type': 'UUID'},
                {'name': 'metadata', 'type': 'JSONB', 'nullable': False, 'default': "'{}'"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'notifications_type_check',
                 'expression': "type IN ('swap_request', 'swap_accepted', 'swap_rejected', "
                               "'swap_completed', 'admin_message', 'feedback_received')"},
                {'name': 'notifications_related_check',
                 'expression': "(related_type IS NULL) = (related_id IS NULL) AND "
                               "(related_type IS NULL OR related_type IN ('swap_request', 'user', 'admin_message'))"}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_notifications_user_created', 'columns': ['user_id', 'created_at DESC']},
                {'name': 'idx_notifications_unread', 'columns': ['user_id'], 'where': 'NOT is_read'}
            ]
        },
        {
            'name': 'admin_messages',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'message', 'type': 'TEXT', 'nullable': False},
                {'name': 'type', 'type': 'TEXT', 'nullable': False, 'default': "'info'"},
                {'name': 'is_active', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
                {'name': 'is_global', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'target_users', 'type': 'UUID[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'expires_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'created_by', 'type': 'UUID'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'admin_messages_type_check',
                 'expression': "type IN ('info', 'warning', 'announcement', 'maintenance')"}
            ],
            'foreign_keys': [
                {'columns': ['created_by'], 'references': 'users(id)', 'on_delete': 'SET NULL'}
            ],
            'indexes': [
                {'name': 'idx_admin_messages_active', 'columns': ['is_active', 'created_at DESC']},
                {'name': 'idx_admin_messages_expires', 'columns': ['expires_at'], 'where': 'expires_at IS NOT NULL'}
            ]
        }
    ],
    'triggers': [
        {
            'name': 'trg_users_updated_at',
            'table': 'users',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_updated_at',
            'function_body': UPDATED_AT_FUNCTION
        },
        {
            'name': 'trg_swap_requests_updated_at',
            'table': 'swap_requests',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_updated_at',
            'function_body': UPDATED_AT_FUNCTION
        },
        {
            'name': 'trg_admin_messages_updated_at',
            'table': 'admin_messages',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_updated_at',
            'function_body': UPDATED_AT_FUNCTION
        }
    ]
}
