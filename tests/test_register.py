from nodeprovisioner.register import Hooks


def test_default_hook_is_noop():
    constraints = {"labels": {"a": "b"}}
    assert Hooks().run_default(constraints) is None
    assert constraints == {"labels": {"a": "b"}}


def test_default_validate_hook_returns_none():
    assert Hooks().run_validate(object()) is None


def test_custom_default_hook_mutates_constraints():
    def add_label(constraints):
        constraints["labels"]["added"] = "yes"

    constraints = {"labels": {}}
    Hooks(default=add_label).run_default(constraints)
    assert constraints["labels"] == {"added": "yes"}


def test_custom_validate_hook_result_is_returned():
    marker = object()
    hooks = Hooks(validate=lambda constraints: marker)
    assert hooks.run_validate({}) is marker


def test_validate_hook_receives_constraints():
    seen = []
    hooks = Hooks(validate=lambda constraints: seen.append(constraints))
    hooks.run_validate("target")
    assert seen == ["target"]