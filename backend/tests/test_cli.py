"""
CLI command tests.
"""

from margarita.extensions import db
from margarita.models import User


class TestCli:

    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        assert "Created admin user: admin" in first.output

        second = runner.invoke(args=["system", "init"])
        assert "Admin user already exists" in second.output
        assert db.session.query(User).filter_by(role="ADMIN").count() == 1

    def test_create_user_rejects_weak_password(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["users", "create", "--username", "bob", "--password", "weak", "--role", "USER"])
        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_recalculate_and_low_stock(self, app, product):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["pricing", "recalculate"])
        assert "Processed 1 products" in result.output

        result = runner.invoke(args=["stock", "low"])
        assert "No products at or below their low-stock level." in result.output
