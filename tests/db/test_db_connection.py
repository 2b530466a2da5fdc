from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from app.db.database import health_check
from app.models.permission_grant import PermissionGrant


def test_database_connection(db: Session):
    """
    Test the database connection is working by executing a simple query
    """
    result = db.execute(text("SELECT 1")).scalar()
    assert result == 1


def test_permission_grants_table_exists(db: Session):
    inspector = inspect(db.bind)
    tables = inspector.get_table_names()

    assert "permission_grants" in tables


def test_crud_operations(db: Session):
    """
    Test basic CRUD operations on the permission grants table
    """
    grant = PermissionGrant(permission="android.permission.ACCESS_FINE_LOCATION")
    db.add(grant)
    db.commit()

    retrieved = (
        db.query(PermissionGrant)
        .filter_by(permission="android.permission.ACCESS_FINE_LOCATION")
        .first()
    )
    assert retrieved is not None
    assert retrieved.granted is False
    assert retrieved.denial_count == 0

    retrieved.granted = True
    db.commit()
    db.refresh(retrieved)
    assert retrieved.granted is True

    db.delete(retrieved)
    db.commit()

    check = db.query(PermissionGrant).filter_by(permission="android.permission.ACCESS_FINE_LOCATION").first()
    assert check is None


def test_health_check_healthy(db: Session):
    health = health_check(db)

    assert health.healthy is True
    assert health.message == "Database connection successful"
