from roadmap_export.config.loader import ExportSettings, load_export_settings

__all__ = ["ExportSettings", "load_export_settings"]
