"""
Unit Tests for the data store and its change feed
"""
import pytest

from sedp.models.enums import ChangeType
from sedp.store import ChangeFeed, ChangeEvent
from sedp.utils.exceptions import StoreFailure


def _panchayath(name="Kottakkal"):
    return {"malayalam_name": name, "english_name": name, "district": "Malappuram"}


class TestCrud:
    """Tests for select/insert/update/delete"""

    def test_insert_generates_id_and_timestamp(self, store):
        row = store.insert("panchayaths", _panchayath())

        assert row["id"]
        assert row["created_at"] is not None
        assert store.select("panchayaths") == [row]

    def test_select_filters_and_order(self, store):
        store.insert("panchayaths", _panchayath("Tirur"))
        store.insert("panchayaths", _panchayath("Areekode"))
        store.insert("panchayaths", {**_panchayath("Ponnani"), "district": "Thrissur"})

        rows = store.select("panchayaths", filters={"district": "Malappuram"}, order_by="malayalam_name")
        assert [r["english_name"] for r in rows] == ["Areekode", "Tirur"]

        rows = store.select("panchayaths", order_by="malayalam_name", descending=True, limit=1)
        assert rows[0]["english_name"] == "Tirur"

    def test_select_any_of(self, store):
        store.insert("panchayaths", _panchayath("Tirur"))
        store.insert("panchayaths", _panchayath("Areekode"))
        store.insert("panchayaths", _panchayath("Ponnani"))

        rows = store.select(
            "panchayaths", any_of=[{"english_name": "Tirur"}, {"english_name": "Ponnani"}], order_by="english_name"
        )
        assert [r["english_name"] for r in rows] == ["Ponnani", "Tirur"]

    def test_update_and_delete_counts(self, store):
        row = store.insert("panchayaths", _panchayath())

        assert store.update("panchayaths", {"pincode": "676503"}, {"id": row["id"]}) == 1
        assert store.update("panchayaths", {"pincode": "676503"}, {"id": "missing"}) == 0
        assert store.select("panchayaths")[0]["pincode"] == "676503"

        assert store.delete("panchayaths", {"id": row["id"]}) == 1
        assert store.delete("panchayaths", {"id": row["id"]}) == 0
        assert store.select("panchayaths") == []

    def test_unfiltered_writes_refused(self, store):
        with pytest.raises(StoreFailure):
            store.update("panchayaths", {"pincode": "1"}, {})
        with pytest.raises(StoreFailure):
            store.delete("panchayaths", {})

    def test_unknown_table(self, store):
        with pytest.raises(StoreFailure):
            store.select("users")

    def test_constraint_violation_is_store_failure(self, store):
        store.insert("categories", {"name": "farmelife", "label": "FarmeLife"})
        with pytest.raises(StoreFailure) as exc:
            store.insert("categories", {"name": "farmelife", "label": "Duplicate"})
        assert exc.value.cause is not None


class TestChangeFeed:
    """Tests for change notification delivery"""

    def test_events_for_each_write(self, store):
        events = []
        store.subscribe("panchayaths", events.append)

        row = store.insert("panchayaths", _panchayath())
        store.update("panchayaths", {"pincode": "676503"}, {"id": row["id"]})
        store.delete("panchayaths", {"id": row["id"]})

        assert [e.event_type for e in events] == [ChangeType.INSERT, ChangeType.UPDATE, ChangeType.DELETE]
        assert events[1].record["pincode"] == "676503"
        assert all(e.record["id"] == row["id"] for e in events)

    def test_only_subscribed_table_notified(self, store):
        events = []
        store.subscribe("announcements", events.append)

        store.insert("panchayaths", _panchayath())

        assert events == []

    def test_no_event_when_nothing_changed(self, store):
        events = []
        store.subscribe("panchayaths", events.append)

        store.update("panchayaths", {"pincode": "1"}, {"id": "missing"})
        store.delete("panchayaths", {"id": "missing"})

        assert events == []

    def test_unsubscribe(self, store):
        events = []
        unsubscribe = store.subscribe("panchayaths", events.append)
        unsubscribe()
        unsubscribe()

        store.insert("panchayaths", _panchayath())

        assert events == []
        assert store.feed.listener_count() == 0

    def test_failing_listener_does_not_break_writer(self, store):
        events = []

        def broken(event):
            raise RuntimeError("listener bug")

        store.subscribe("panchayaths", broken)
        store.subscribe("panchayaths", events.append)

        row = store.insert("panchayaths", _panchayath())

        assert row["id"]
        assert len(events) == 1

    def test_feed_listener_count(self):
        feed = ChangeFeed()
        feed.subscribe("a", lambda e: None)
        feed.subscribe("a", lambda e: None)
        feed.subscribe("b", lambda e: None)

        assert feed.listener_count("a") == 2
        assert feed.listener_count() == 3

        feed.publish(ChangeEvent(table="c", event_type=ChangeType.INSERT))


class TestTransaction:
    """Tests for multi-statement atomic work"""

    def test_failed_block_rolls_back_and_publishes_nothing(self, store):
        events = []
        store.subscribe("panchayaths", events.append)

        with pytest.raises(StoreFailure):
            with store.transaction() as tx:
                tx.insert("panchayaths", _panchayath("Tirur"))
                tx.update("panchayaths", {"pincode": "1"}, {})

        assert store.select("panchayaths") == []
        assert events == []

    def test_events_published_after_commit(self, store):
        events = []
        store.subscribe("panchayaths", events.append)

        with store.transaction() as tx:
            row = tx.insert("panchayaths", _panchayath("Tirur"))
            tx.update("panchayaths", {"pincode": "676101"}, {"id": row["id"]})
            assert events == []

        assert [e.event_type for e in events] == [ChangeType.INSERT, ChangeType.UPDATE]
        assert store.select("panchayaths")[0]["pincode"] == "676101"

    def test_insert_unless_blocked(self, store):
        first = store.insert_unless("user_roles", {"user_id": "a", "role": "admin"}, blocking={"role": "admin"})
        second = store.insert_unless("user_roles", {"user_id": "b", "role": "admin"}, blocking={"role": "admin"})

        assert first["user_id"] == "a"
        assert first["created_at"] is not None
        assert second is None
        assert [r["user_id"] for r in store.select("user_roles")] == ["a"]

    def test_insert_unless_needs_condition(self, store):
        with pytest.raises(StoreFailure):
            store.insert_unless("user_roles", {"user_id": "a", "role": "admin"}, blocking={})
