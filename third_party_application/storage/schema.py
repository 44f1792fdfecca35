"""PostgreSQL schema definitions for the third-party application store."""

# Helper function for auto-updating timestamps
CREATE_UPDATED_AT_TRIGGER = """
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

# Applications table - one row per registration, nested values as JSONB
CREATE_APPLICATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS applications (
    id TEXT PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    normalised_name VARCHAR(255) NOT NULL,
    description TEXT,
    environment VARCHAR(20) NOT NULL,
    gateway_id TEXT NOT NULL UNIQUE,
    client_id TEXT NOT NULL UNIQUE,
    state_name VARCHAR(50) NOT NULL,
    verification_code TEXT,
    state_updated_on TIMESTAMPTZ NOT NULL,
    rate_limit_tier VARCHAR(20),
    blocked BOOLEAN NOT NULL DEFAULT false,
    collaborators JSONB NOT NULL DEFAULT '[]'::jsonb,
    access JSONB NOT NULL,
    tokens JSONB NOT NULL,
    state JSONB NOT NULL,
    ip_allowlist JSONB NOT NULL DEFAULT '{}'::jsonb,
    check_information JSONB,
    created_on TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_access TIMESTAMPTZ,
    version INTEGER NOT NULL DEFAULT 0,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_applications_normalised_name ON applications(normalised_name);
CREATE INDEX IF NOT EXISTS idx_applications_state_name ON applications(state_name);
CREATE UNIQUE INDEX IF NOT EXISTS idx_applications_verification_code
    ON applications(verification_code) WHERE verification_code IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_applications_collaborators ON applications USING GIN(collaborators);

DROP TRIGGER IF EXISTS update_applications_updated_at ON applications;
CREATE TRIGGER update_applications_updated_at
    BEFORE UPDATE ON applications
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""

# State history table - append-only transition log
CREATE_STATE_HISTORY_TABLE = """
CREATE TABLE IF NOT EXISTS state_history (
    id BIGSERIAL PRIMARY KEY,
    application_id TEXT NOT NULL,
    state VARCHAR(50) NOT NULL,
    previous_state VARCHAR(50),
    actor_id TEXT NOT NULL,
    actor_type VARCHAR(20) NOT NULL,
    notes TEXT,
    changed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_state_history_application_id ON state_history(application_id);
CREATE INDEX IF NOT EXISTS idx_state_history_state ON state_history(state);
"""

# Subscriptions table - (application, api) relation
CREATE_SUBSCRIPTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS subscriptions (
    application_id TEXT NOT NULL REFERENCES applications(id) ON DELETE CASCADE,
    context TEXT NOT NULL,
    version TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (application_id, context, version)
);

CREATE INDEX IF NOT EXISTS idx_subscriptions_api ON subscriptions(context, version);
"""

# Complete initialization script
INIT_SCHEMA = f"""
-- Create helper functions
{CREATE_UPDATED_AT_TRIGGER}

-- Create tables in dependency order
{CREATE_APPLICATIONS_TABLE}
{CREATE_STATE_HISTORY_TABLE}
{CREATE_SUBSCRIPTIONS_TABLE}
"""
