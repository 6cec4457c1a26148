"""
                        Services Module

Business logic services with the hybrid architecture pattern.
Services with an external dependency have a development and a
production implementation.

Services:
    - store: Order/menu data (in-memory or PostgreSQL)
    - llm: Hosted language model (Gemini or disabled)
    - voice: Command pipeline and speech capture
    - excel_manager: Thread-safe command log export
"""

from kitchen_voice.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
