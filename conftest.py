"""
Pytest configuration file for the Bank Wire Server project.
This file ensures that the bankserver package can be imported during tests.
"""

import sys
from pathlib import Path

# Add the project root directory to the Python path
project_root = Path(__file__).parent.absolute()
sys.path.insert(0, str(project_root))
