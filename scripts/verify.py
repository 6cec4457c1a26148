"""
Command Log Verification Script

Summarizes the Excel command log written by the Celery worker.
Run from project root: python scripts/verify.py

Version: 4.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from kitchen_voice.services.excel_manager import ExcelManager


def verify_command_log() -> bool:
    """Verify the command log after a simulation run."""
    log_file = ExcelManager.commands_file()

    print("=" * 60)
    print("🔍 COMMAND LOG REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {log_file}")
    print("=" * 60)

    if not log_file.exists():
        print("\n❌ Command log not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(log_file, engine='openpyxl')
        print(f"\n✅ File loaded successfully!")
    except (OSError, ValueError) as e:
        print(f"\n❌ Could not read Excel file: {e}")
        return False

    print(f"\n📊 STATISTICS:")
    print(f"   Total Commands: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in ExcelManager.COMMAND_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print(f"\n✅ All required columns present")

    if 'command_id' in df.columns:
        duplicates = df['command_id'].duplicated().sum()
        if duplicates > 0:
            print(f"\n⚠️ {duplicates} duplicate command IDs found!")
        else:
            print(f"✅ No duplicate command IDs")

    if len(df) > 0 and 'intent' in df.columns:
        print(f"\n🧭 INTENTS:")
        for intent, count in df['intent'].value_counts().items():
            print(f"   {intent}: {count}")

    if len(df) > 0 and 'analysis_source' in df.columns:
        fallback_share = (df['analysis_source'] == 'fallback').mean() * 100
        print(f"\n🤖 Fallback analyses: {fallback_share:.1f}%")

    if len(df) > 0 and 'success' in df.columns:
        success_rate = df['success'].astype(bool).mean() * 100
        print(f"⚙️  Executed successfully: {success_rate:.1f}%")

    print(f"\n📋 RECENT COMMANDS:")
    print("-" * 60)
    if len(df) > 0:
        cols = ['transcript', 'intent', 'success', 'response']
        cols = [c for c in cols if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE")
    print("=" * 60)

    return True


if __name__ == "__main__":
    verify_command_log()
