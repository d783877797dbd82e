import pytest

from clinic_backend.core.config import settings
from clinic_backend.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from clinic_backend.core.permissions import ALL_PERMISSIONS, DEFAULT_ROLE_GRANTS, Permissions
from clinic_backend.db.seeds.seed_roles import seed_permissions_and_roles
from clinic_backend.models.role import Permission, Role
from clinic_backend.services import permission_service as permission_module
from clinic_backend.services.identity_service import identity_service
from clinic_backend.services.permission_service import permission_service


def permission_id(db, name):
    return db.query(Permission).filter(Permission.name == name).one().id


def role_named(db, name):
    return db.query(Role).filter(Role.name == name).one()


def new_user(db, email="someone@clinic.test"):
    user = identity_service.create_account(db, email, "secret123")
    db.commit()
    return user


class FakeCache:
    def __init__(self):
        self.store = {}
        self.deleted = []
        self.patterns = []
        self.before_fill = None

    def get(self, key):
        return self.store.get(key)

    def incr(self, key):
        self.store[key] = str(int(self.store.get(key, "0")) + 1)
        return int(self.store[key])

    def get_json(self, key):
        return self.store.get(key)

    def set_json(self, key, value, ttl_seconds=60):
        hook, self.before_fill = self.before_fill, None
        if hook is not None:
            hook()
        self.store[key] = value

    def delete(self, key):
        self.deleted.append(key)
        self.store.pop(key, None)

    def invalidate_pattern(self, pattern):
        self.patterns.append(pattern)
        prefix = pattern.rstrip("*")
        for key in [k for k in self.store if k.startswith(prefix)]:
            del self.store[key]


@pytest.fixture()
def fake_cache(monkeypatch):
    cache = FakeCache()
    monkeypatch.setattr(permission_module, "cache_service", cache)
    monkeypatch.setattr(settings, "PERMISSION_CACHE_ENABLED", True)
    return cache


# ---- Catalog ----

def test_create_permission_requires_snake_case(db):
    with pytest.raises(ValidationError):
        permission_service.create_permission(db, "ViewReports")
    with pytest.raises(ValidationError):
        permission_service.create_permission(db, "reports")


def test_create_permission_rejects_duplicate_name(db):
    permission_service.create_permission(db, "export_reports")
    with pytest.raises(ResourceConflictError):
        permission_service.create_permission(db, "export_reports")


def test_delete_permission_in_use_is_a_conflict(db):
    created = permission_service.create_permission(db, "export_reports")
    role = permission_service.create_role(db, "auditor", [created.id])

    with pytest.raises(ResourceConflictError, match="assigned to roles"):
        permission_service.delete_permission(db, created.id)
    assert db.get(Permission, created.id) is not None

    permission_service.assign_permissions(db, role.id, [])
    permission_service.delete_permission(db, created.id)
    assert db.get(Permission, created.id) is None


def test_get_unknown_permission_is_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        permission_service.get_permission(db, 99999)


def test_list_permissions_is_ordered_and_paged(db):
    page = permission_service.list_permissions(db, page=1, page_size=5)
    names = [p.name for p in page["items"]]
    assert names == sorted(names)
    assert page["total_count"] == len(ALL_PERMISSIONS)
    assert len(names) == 5


# ---- Roles ----

def test_assign_permissions_is_a_full_replace(db):
    a = permission_id(db, Permissions.VIEW_PATIENTS)
    b = permission_id(db, Permissions.VIEW_DOCTORS)
    c = permission_id(db, Permissions.VIEW_CLINICS)
    role = permission_service.create_role(db, "receptionist")

    permission_service.assign_permissions(db, role.id, [a, b])
    role = permission_service.assign_permissions(db, role.id, [b, c])

    assert {p.name for p in role.permissions} == {
        Permissions.VIEW_DOCTORS, Permissions.VIEW_CLINICS,
    }


def test_assign_permissions_skips_unknown_ids_and_duplicates(db):
    a = permission_id(db, Permissions.VIEW_PATIENTS)
    role = permission_service.create_role(db, "receptionist")

    role = permission_service.assign_permissions(db, role.id, [a, a, 424242])

    assert [p.name for p in role.permissions] == [Permissions.VIEW_PATIENTS]


def test_remove_permission_from_role(db):
    a = permission_id(db, Permissions.VIEW_PATIENTS)
    b = permission_id(db, Permissions.VIEW_DOCTORS)
    role = permission_service.create_role(db, "receptionist", [a, b])

    permission_service.remove_permission_from_role(db, role.id, a)

    assert [p.id for p in permission_service.get_role_permissions(db, role.id)] == [b]
    with pytest.raises(ResourceNotFoundError):
        permission_service.remove_permission_from_role(db, role.id, a)


def test_create_role_rejects_duplicate_name(db):
    with pytest.raises(ResourceConflictError):
        permission_service.create_role(db, "doctor")


def test_delete_role_held_by_a_user_is_a_conflict(db):
    role = permission_service.create_role(db, "receptionist")
    user = new_user(db)
    identity_service.add_to_role(db, user.id, "receptionist")
    db.commit()

    with pytest.raises(ResourceConflictError, match="assigned to users"):
        permission_service.delete_role(db, role.id)

    identity_service.remove_from_role(db, user.id, "receptionist")
    db.commit()
    permission_service.delete_role(db, role.id)
    assert db.get(Role, role.id) is None


# ---- Resolver ----

def test_effective_permissions_are_the_union_of_roles(db):
    first = permission_service.create_role(
        db, "front_desk", [permission_id(db, Permissions.VIEW_PATIENTS)],
    )
    second = permission_service.create_role(
        db, "scheduler",
        [permission_id(db, Permissions.VIEW_PATIENTS), permission_id(db, Permissions.BOOK_APPOINTMENTS)],
    )
    user = new_user(db)
    identity_service.add_to_role(db, user.id, first.name)
    identity_service.add_to_role(db, user.id, second.name)
    db.commit()

    assert permission_service.get_effective_permissions(db, user.id) == {
        Permissions.VIEW_PATIENTS, Permissions.BOOK_APPOINTMENTS,
    }


def test_user_without_roles_has_no_permissions(db):
    user = new_user(db)
    assert permission_service.get_effective_permissions(db, user.id) == set()
    assert not permission_service.has_permission(db, user.id, Permissions.VIEW_PATIENTS)


def test_unknown_user_has_no_permissions(db):
    assert permission_service.get_effective_permissions(db, 424242) == set()


def test_unknown_permission_name_is_never_held(db, factory):
    admin = factory.admin()
    assert permission_service.has_permission(db, admin.id, Permissions.MANAGE_USERS)
    assert not permission_service.has_permission(db, admin.id, "launch_rockets")


def test_deactivated_user_has_no_permissions(db, factory):
    admin = factory.admin()
    identity_service.update_attributes(db, admin.id, is_active=False)
    db.commit()
    assert permission_service.get_effective_permissions(db, admin.id) == set()


def test_role_changes_apply_on_the_next_check(db):
    role = permission_service.create_role(db, "front_desk")
    user = new_user(db)
    identity_service.add_to_role(db, user.id, role.name)
    db.commit()
    assert not permission_service.has_permission(db, user.id, Permissions.VIEW_PATIENTS)

    permission_service.assign_permissions(db, role.id, [permission_id(db, Permissions.VIEW_PATIENTS)])
    assert permission_service.has_permission(db, user.id, Permissions.VIEW_PATIENTS)

    identity_service.remove_from_role(db, user.id, role.name)
    db.commit()
    assert not permission_service.has_permission(db, user.id, Permissions.VIEW_PATIENTS)


def test_user_role_info(db, factory):
    admin = factory.admin()
    info = permission_service.get_user_role_info(db, admin.id)
    assert info["roles"] == ["admin"]
    assert info["permissions"] == sorted(ALL_PERMISSIONS)


# ---- Cache ----

def test_cached_permissions_are_dropped_after_commit(db, fake_cache):
    role = permission_service.create_role(
        db, "front_desk", [permission_id(db, Permissions.VIEW_PATIENTS)],
    )
    user = new_user(db)
    identity_service.add_to_role(db, user.id, role.name)
    db.commit()

    assert permission_service.has_permission(db, user.id, Permissions.VIEW_PATIENTS)
    assert f"permissions:user:{user.id}" in fake_cache.store

    fake_cache.patterns.clear()
    permission_service.assign_permissions(db, role.id, [permission_id(db, Permissions.VIEW_DOCTORS)])

    assert fake_cache.patterns == ["permissions:user:*"]
    assert not permission_service.has_permission(db, user.id, Permissions.VIEW_PATIENTS)
    assert permission_service.has_permission(db, user.id, Permissions.VIEW_DOCTORS)


def test_membership_change_drops_only_that_user(db, fake_cache):
    user = new_user(db)
    identity_service.add_to_role(db, user.id, "patient")
    db.commit()

    assert fake_cache.deleted == [f"permissions:user:{user.id}"]
    assert fake_cache.patterns == []


def test_revocation_committed_during_cache_fill_is_not_served(db, factory, fake_cache):
    admin = factory.admin()
    admin_role = role_named(db, "admin")
    fake_cache.before_fill = lambda: permission_service.assign_permissions(db, admin_role.id, [])

    # This read ran its query before the revocation committed.
    assert permission_service.has_permission(db, admin.id, Permissions.MANAGE_USERS)
    assert f"permissions:user:{admin.id}" in fake_cache.store

    assert not permission_service.has_permission(db, admin.id, Permissions.MANAGE_USERS)
    assert permission_service.get_effective_permissions(db, admin.id) == set()


def test_rolled_back_change_does_not_touch_the_cache(db, fake_cache):
    user = new_user(db)
    identity_service.add_to_role(db, user.id, "patient")
    db.rollback()
    db.commit()

    assert fake_cache.deleted == []


# ---- Bootstrap ----

def test_seed_is_idempotent_and_keeps_operator_edits(db):
    doctor = role_named(db, "doctor")
    assert {p.name for p in doctor.permissions} == set(DEFAULT_ROLE_GRANTS["doctor"])

    permission_service.assign_permissions(db, doctor.id, [permission_id(db, Permissions.VIEW_CLINICS)])
    seed_permissions_and_roles(db)
    seed_permissions_and_roles(db)

    db.refresh(doctor)
    assert [p.name for p in doctor.permissions] == [Permissions.VIEW_CLINICS]
    assert db.query(Permission).count() == len(ALL_PERMISSIONS)
    assert {p.name for p in role_named(db, "admin").permissions} == set(ALL_PERMISSIONS)


def test_seeded_doctor_only_reads_appointments(db):
    granted = {p.name for p in role_named(db, "doctor").permissions}
    assert Permissions.VIEW_APPOINTMENTS in granted
    assert Permissions.UPDATE_APPOINTMENTS not in granted
    assert Permissions.ACCEPT_APPOINTMENTS not in granted


def test_seed_restores_admin_grants(db):
    admin = role_named(db, "admin")
    permission_service.assign_permissions(db, admin.id, [])

    seed_permissions_and_roles(db)

    db.refresh(admin)
    assert {p.name for p in admin.permissions} == set(ALL_PERMISSIONS)
