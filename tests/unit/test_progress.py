from __future__ import annotations

from unittest.mock import MagicMock, patch

from nutrient_import.services.progress import ProgressTracker, is_tty_enabled, percent_complete


def test_percent_complete():
    assert percent_complete(0, 4) == 0
    assert percent_complete(1, 3) == 33
    assert percent_complete(2, 3) == 67
    assert percent_complete(4, 4) == 100
    assert percent_complete(0, 0) == 100
    assert percent_complete(9, 4) == 100


def test_tracker_disabled_without_tty():
    with patch("nutrient_import.services.progress.is_tty_enabled", return_value=False):
        with ProgressTracker(3) as tracker:
            tracker.advance(inserted=1)
            tracker.advance()
        assert tracker.pbar is None
        assert tracker.current_batch == 2


def test_tracker_updates_tqdm_on_tty():
    bar = MagicMock()
    with patch("nutrient_import.services.progress.is_tty_enabled", return_value=True), \
         patch("nutrient_import.services.progress.tqdm", return_value=bar) as tqdm_cls:
        tracker = ProgressTracker(2)
        tracker.advance(inserted=5, skipped=1, errors=0)
        tracker.close()
    assert tqdm_cls.call_args.kwargs["total"] == 2
    assert tqdm_cls.call_args.kwargs["unit"] == "batch"
    bar.set_postfix.assert_called_once_with(inserted=5, skipped=1, errors=0)
    bar.update.assert_called_once_with(1)
    bar.close.assert_called_once()
    assert tracker.pbar is None


def test_is_tty_enabled_follows_stdout():
    with patch("sys.stdout") as stdout:
        stdout.isatty.return_value = True
        assert is_tty_enabled() is True
