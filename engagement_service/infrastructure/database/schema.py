"""
Database schema for the engagement core

The unique constraints double as concurrency guards: like and connection
inserts use ON CONFLICT DO NOTHING against them instead of check-then-act.
"""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    username        TEXT NOT NULL UNIQUE,
    email           TEXT NOT NULL UNIQUE,
    password        TEXT NOT NULL DEFAULT '',
    full_name       TEXT NOT NULL DEFAULT '',
    business_name   TEXT,
    business_type   TEXT,
    location        TEXT,
    avatar          TEXT,
    bio             TEXT,
    website         TEXT,
    connections     INTEGER NOT NULL DEFAULT 0 CHECK (connections >= 0),
    business_score  INTEGER NOT NULL DEFAULT 50,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS users_business_score_idx
    ON users (business_score DESC, username);

CREATE TABLE IF NOT EXISTS posts (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    content         TEXT NOT NULL,
    title           TEXT,
    image_url       TEXT,
    post_type       TEXT NOT NULL DEFAULT 'discussion',
    tags            TEXT[] NOT NULL DEFAULT '{}',
    likes_count     INTEGER NOT NULL DEFAULT 0 CHECK (likes_count >= 0),
    comments_count  INTEGER NOT NULL DEFAULT 0 CHECK (comments_count >= 0),
    shares_count    INTEGER NOT NULL DEFAULT 0 CHECK (shares_count >= 0),
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at      TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS posts_user_created_idx
    ON posts (user_id, created_at DESC);

CREATE TABLE IF NOT EXISTS likes (
    id              TEXT PRIMARY KEY,
    post_id         TEXT NOT NULL REFERENCES posts (id) ON DELETE CASCADE,
    user_id         TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT likes_post_user_key UNIQUE (post_id, user_id)
);

CREATE TABLE IF NOT EXISTS comments (
    id              TEXT PRIMARY KEY,
    post_id         TEXT NOT NULL REFERENCES posts (id) ON DELETE CASCADE,
    user_id         TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    content         TEXT NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS comments_post_created_idx
    ON comments (post_id, created_at);
CREATE INDEX IF NOT EXISTS comments_user_created_idx
    ON comments (user_id, created_at DESC);

CREATE TABLE IF NOT EXISTS connections (
    id              TEXT PRIMARY KEY,
    requester_id    TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    receiver_id     TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    status          TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending', 'accepted', 'rejected', 'blocked')),
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at      TIMESTAMPTZ,
    CONSTRAINT connections_not_self CHECK (requester_id <> receiver_id)
);

-- (A, B) and (B, A) are the same relationship
CREATE UNIQUE INDEX IF NOT EXISTS connections_pair_idx
    ON connections (LEAST(requester_id, receiver_id), GREATEST(requester_id, receiver_id));
CREATE INDEX IF NOT EXISTS connections_requester_idx ON connections (requester_id);
CREATE INDEX IF NOT EXISTS connections_receiver_idx ON connections (receiver_id);

CREATE TABLE IF NOT EXISTS notifications (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    actor_id        TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    type            TEXT NOT NULL,
    message         TEXT NOT NULL,
    target_id       TEXT,
    target_type     TEXT,
    read            BOOLEAN NOT NULL DEFAULT false,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS notifications_user_created_idx
    ON notifications (user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS notifications_unread_idx
    ON notifications (user_id) WHERE NOT read;

CREATE TABLE IF NOT EXISTS analytics_events (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    event_type      TEXT NOT NULL,
    payload         JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS analytics_events_user_created_idx
    ON analytics_events (user_id, created_at);

CREATE TABLE IF NOT EXISTS trending_topics (
    id              TEXT PRIMARY KEY,
    tag             TEXT NOT NULL UNIQUE,
    count           INTEGER NOT NULL DEFAULT 1,
    growth_rate     DOUBLE PRECISION NOT NULL DEFAULT 0,
    last_updated    TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS trending_topics_rank_idx
    ON trending_topics (growth_rate DESC, count DESC);

CREATE TABLE IF NOT EXISTS business_metrics (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL UNIQUE REFERENCES users (id) ON DELETE CASCADE,
    profile_views       INTEGER NOT NULL DEFAULT 0,
    network_growth      INTEGER NOT NULL DEFAULT 0,
    opportunities       INTEGER NOT NULL DEFAULT 0,
    engagement_score    INTEGER NOT NULL DEFAULT 0,
    last_updated        TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""
