import pytest

from repair_desk.stores import UIStore


class TestUIStore:
    """Unit tests for UIStore"""

    def test_defaults(self):
        """Test initial preferences"""
        ui = UIStore()
        assert ui.is_dark_mode is False
        assert ui.language == "en"
        assert ui.sidebar_collapsed is False

    def test_toggles(self):
        """Test theme and sidebar toggles"""
        ui = UIStore()
        ui.toggle_dark_mode()
        ui.toggle_sidebar()
        assert ui.is_dark_mode is True
        assert ui.sidebar_collapsed is True
        ui.toggle_dark_mode()
        assert ui.is_dark_mode is False

    def test_language(self):
        """Test language selection"""
        ui = UIStore()
        ui.set_language("fr")
        assert ui.language == "fr"
        with pytest.raises(ValueError):
            ui.set_language("de")
        assert ui.language == "fr"
