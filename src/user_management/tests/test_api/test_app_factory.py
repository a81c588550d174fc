from user_management import main


def test_importing_main_builds_no_application():
    assert not hasattr(main, "app")


def test_create_app_wires_state(test_settings):
    first = main.create_app(test_settings)
    second = main.create_app(test_settings)

    assert first.state.settings is test_settings
    assert first.state.engine is not second.state.engine
    assert first.state.limiter is not second.state.limiter


def test_run_starts_uvicorn_with_the_factory(monkeypatch, test_settings):
    calls = {}
    monkeypatch.setattr(main, "get_settings", lambda: test_settings)
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.update(target=target, **kwargs))

    main.run()

    assert calls["target"] == "user_management.main:create_app"
    assert calls["factory"] is True
    assert calls["port"] == test_settings.HTTP_PORT
