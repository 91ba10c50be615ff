from factories import OPERATIONS, SALES, make_task, make_user
from taskdesk.utils.hierarchy import HierarchyManager, forward_candidates, resolve_assignable
from taskdesk.models import User

ALL_ROLES = [
    "maindirector", "director", "generalmanager", "manager", "departmenthead",
    "projectmanager", "standalone", "standalonerole", "projectmanagerandstandalone", "staff",
]


def _candidates():
    return [make_user(role) for role in ALL_ROLES]


def test_main_director_gets_every_candidate():
    candidates = _candidates()
    assert resolve_assignable(make_user("maindirector"), candidates) == candidates


def test_director_gets_gm_manager_and_department_head():
    result = resolve_assignable(make_user("director", department=None), _candidates())
    assert [u.role.name for u in result] == ["generalmanager", "manager", "departmenthead"]


def test_general_manager_gets_managers_heads_and_standalone_roles():
    result = resolve_assignable(make_user("generalmanager", department=None), _candidates())
    assert [u.role.name for u in result] == [
        "manager", "departmenthead", "projectmanager", "standalone",
        "standalonerole", "projectmanagerandstandalone",
    ]


def test_lower_roles_keep_backend_list():
    candidates = _candidates()
    for role in ("manager", "departmenthead", "staff", "projectmanager"):
        assert resolve_assignable(make_user(role), candidates) == candidates


def test_resolver_preserves_order():
    candidates = [make_user("manager"), make_user("generalmanager"), make_user("departmenthead")]
    result = resolve_assignable(make_user("director"), candidates)
    assert [u.id for u in result] == [c.id for c in candidates]


def test_main_director_result_is_superset_of_every_other_role():
    candidates = _candidates()
    everything = {u.id for u in resolve_assignable(make_user("maindirector"), candidates)}
    for role in ALL_ROLES:
        assert {u.id for u in resolve_assignable(make_user(role), candidates)} <= everything


def test_empty_candidate_list():
    assert resolve_assignable(make_user("director"), []) == []


def test_forward_candidates_are_staff_other_than_actor_and_holder():
    head = make_user("departmenthead", department=SALES)
    holder = make_user("staff", department=SALES)
    other_staff = make_user("staff", department=SALES)
    ops_staff = make_user("staff", department=OPERATIONS)
    inactive = make_user("staff", department=SALES, is_active=False)
    manager = make_user("manager", department=SALES)
    task = make_task(head, holder)

    users = [head, holder, other_staff, ops_staff, inactive, manager]
    assert [u.id for u in forward_candidates(head, task, users)] == [other_staff.id, ops_staff.id]


def test_forward_candidates_exclude_leads_of_other_departments():
    head = make_user("departmenthead", department=SALES)
    holder = make_user("staff", department=SALES)
    ops_head = make_user("departmenthead", department=OPERATIONS)
    ops_manager = make_user("manager", department=OPERATIONS)
    task = make_task(head, holder)

    assert forward_candidates(head, task, [ops_head, ops_manager]) == []


def test_assignable_users_for_department_head(db_session, org):
    manager = HierarchyManager(db_session)
    head = manager.get_user(org["head"])
    names = {u.name for u in manager.get_assignable_users(head)}

    assert "Sales Head" not in names
    assert {"Alice", "Bob", "Carol", "Sales Manager", "Ops Head"} <= names
    # staff of other departments and the top of the hierarchy stay out of reach
    assert "Dave" not in names
    assert "Main Director" not in names


def test_assignable_users_for_staff_is_everyone_else(db_session, org):
    manager = HierarchyManager(db_session)
    alice = manager.get_user(org["alice"])
    ids = {u.id for u in manager.get_assignable_users(alice)}
    assert org["alice"] not in ids
    assert ids == set(org.values()) - {org["alice"]}


def test_inactive_users_are_not_returned(db_session, org):
    db_session.query(User).filter(User.id == org["carol"]).update({"is_active": False})
    db_session.commit()
    manager = HierarchyManager(db_session)
    assert manager.get_user(org["carol"]) is None
    assert org["carol"] not in {u.id for u in manager.get_all_users()}
