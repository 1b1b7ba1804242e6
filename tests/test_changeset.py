from etcutils.changeset import (
    ADDED,
    MODIFIED,
    REMOVED,
    Change,
    calculate_changes,
    current_entries,
)
from etcutils.records import Group, User


CURRENT = [
    "root:x:0:0:root:/root:/bin/bash\n",
    "alice:x:1000:1000::/home/alice:/bin/bash\n",
    "bob:x:1001:1001::/home/bob:/bin/sh\n",
]


def user(line: str) -> User:
    return User.parse(line)


class TestCurrentEntries:
    def test_skips_comments_and_blanks(self) -> None:
        lines = ["# header\n", "\n", "root:x:0:\n"]
        assert current_entries(lines) == {"root": "root:x:0:"}

    def test_first_occurrence_wins(self) -> None:
        lines = ["root:x:0:\n", "root:x:99:\n"]
        assert current_entries(lines) == {"root": "root:x:0:"}


class TestCalculateChanges:
    def test_no_changes(self) -> None:
        """Rewriting the same records changes nothing"""
        proposed = [user(l) for l in CURRENT]
        assert calculate_changes(CURRENT, proposed) == []

    def test_added_and_removed(self) -> None:
        """Dropping one user and adding another"""
        proposed = [
            user("root:x:0:0:root:/root:/bin/bash"),
            user("alice:x:1000:1000::/home/alice:/bin/bash"),
            user("carol:x:1002:1002::/home/carol:/bin/zsh"),
        ]
        changes = calculate_changes(CURRENT, proposed)
        assert changes == [Change(ADDED, "carol"), Change(REMOVED, "bob")]

    def test_modified(self) -> None:
        proposed = [user(l) for l in CURRENT]
        proposed[1] = user("alice:x:1000:1000::/home/alice:/bin/zsh")
        assert calculate_changes(CURRENT, proposed) == [Change(MODIFIED, "alice")]

    def test_order(self) -> None:
        """Additions and modifications in proposed order, then removals"""
        proposed = [
            user("zed:x:2000:2000:::"),
            user("root:x:0:0:root:/root:/bin/sh"),
        ]
        changes = calculate_changes(CURRENT, proposed)
        assert changes == [
            Change(ADDED, "zed"),
            Change(MODIFIED, "root"),
            Change(REMOVED, "alice"),
            Change(REMOVED, "bob"),
        ]

    def test_empty_file(self) -> None:
        """Every proposed record is new when there is no current file"""
        changes = calculate_changes([], [Group(name="root", gid=0)])
        assert changes == [Change(ADDED, "root")]

    def test_everything_removed(self) -> None:
        changes = calculate_changes(CURRENT, [])
        assert [c.type for c in changes] == [REMOVED] * 3

    def test_change_str(self) -> None:
        assert str(Change(ADDED, "carol")) == "added: carol"
