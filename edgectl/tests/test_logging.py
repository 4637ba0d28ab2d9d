import logging

from edgectl.logging import REDACTED, redact, setup_logging


def test_redact_replaces_every_secret():
    text = "K3S_TOKEN=s3cret sh -; echo hunter2 | sudo -S"

    assert redact(text, ["s3cret", "hunter2"]) == f"K3S_TOKEN={REDACTED} sh -; echo {REDACTED} | sudo -S"


def test_redact_ignores_empty_secrets():
    assert redact("nothing to hide", ["", None]) == "nothing to hide"


def test_setup_logging_quiets_libraries(tmp_path):
    log_file = tmp_path / "logs" / "edgectl.log"

    setup_logging(debug_mode=False, log_file=str(log_file))
    logging.getLogger("edgectl.test").info("hello")

    assert logging.getLogger("paramiko").level == logging.WARNING
    assert log_file.exists()
