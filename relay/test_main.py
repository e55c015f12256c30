from unittest.mock import patch

from relay import main as main_module


def test_main_serves_app():
    with patch.object(main_module.uvicorn, "run") as run:
        main_module.main()

    run.assert_called_once_with(
        "relay.server:app", host=main_module.HOST, port=main_module.PORT
    )
