"""Database configuration and initialization."""
from sqlalchemy import BigInteger, Integer, create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = scoped_session(sessionmaker(autocommit=False, autoflush=False))


def init_db(app):
    """Initialize database connection."""
    global engine

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine_options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    # SQLite (tests, local dev) uses a singleton pool without sizing options
    if not database_uri.startswith('sqlite'):
        engine_options['pool_size'] = 10
        engine_options['max_overflow'] = 20

    engine = create_engine(database_uri, **engine_options)

    db_session.remove()
    db_session.configure(bind=engine)

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_schema():
    """Create all tables for the registered models."""
    # Import models so they are registered on Base.metadata
    import restaurant_ops.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_schema():
    """Drop all tables (used by tests)."""
    import restaurant_ops.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


# Alias for easier imports
db = db_session


# BIGINT keys do not autoincrement on SQLite; fall back to INTEGER there
IdType = BigInteger().with_variant(Integer, 'sqlite')
