from types import SimpleNamespace

from famous_since.store import reconcile


def row(key, price):
    return SimpleNamespace(key=key, price=price)


class TestPlan:
    def test_insert_update_delete(self):
        desired = {"S": {"price": 10}, "M": {"price": 12}, "XL": {"price": 15}}
        actual = {"S": row("S", 10), "M": row("M", 11), "L": row("L", 11)}
        plan = reconcile.plan(desired, actual, reconcile.fields_differ("price"))

        assert plan.insert == [("XL", {"price": 15})]
        assert [(have.key, want) for have, want in plan.update] == [("M", {"price": 12})]
        assert [have.key for have in plan.delete] == ["L"]
        assert not plan.empty

    def test_unchanged_rows_are_left_alone(self):
        actual = {"S": row("S", 10)}
        plan = reconcile.plan({"S": {"price": 10}}, actual, reconcile.fields_differ("price"))
        assert plan.empty

    def test_applying_twice_is_a_no_op(self):
        desired = {"S": {"price": 10}, "M": {"price": 12}}
        actual = {"M": row("M", 9), "L": row("L", 9)}

        first = reconcile.plan(desired, actual, reconcile.fields_differ("price"))
        for key, want in first.insert:
            actual[key] = row(key, want["price"])
        for have, want in first.update:
            have.price = want["price"]
        for have in first.delete:
            del actual[have.key]

        second = reconcile.plan(desired, actual, reconcile.fields_differ("price"))
        assert second.empty
