from stockroom.extensions import db
from stockroom.models import Organization, Setting, User


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--org", "Atlas", "--org-code", "atl",
                                "--email", "Boss@Atlas.ma"])
    second = runner.invoke(args=["system", "init", "--org-code", "ATL", "--email", "boss@atlas.ma"])

    assert first.exit_code == 0, first.output
    assert "PASS Created super admin: boss@atlas.ma" in first.output
    assert second.exit_code == 0, second.output
    assert "PASS User already exists" in second.output

    org = db.session.query(Organization).filter_by(code="ATL").one()
    assert db.session.query(User).filter_by(org_id=org.id, role="SUPER_ADMIN").count() == 1
    assert db.session.query(Setting).filter_by(org_id=org.id).count() > 0


def test_users_create_and_list(app, org):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--org-id", str(org.id), "--email", "clerk@atlas.ma",
                                 "--password", "Password123!", "--role", "STAFF"])
    assert result.exit_code == 0, result.output

    weak = runner.invoke(args=["users", "create", "--org-id", str(org.id), "--email", "weak@atlas.ma",
                               "--password", "short", "--role", "STAFF"])
    assert weak.exit_code != 0
    assert "Password validation failed" in weak.output

    listing = runner.invoke(args=["users", "list", "--org-id", str(org.id)])
    assert "clerk@atlas.ma" in listing.output
    assert "weak@atlas.ma" not in listing.output
