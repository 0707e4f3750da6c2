#!/usr/bin/env python3
"""Run the bank wire server in front of the in-memory banking service.

Try it with:
    curl -X POST localhost:8000/bank/signup -d '{"username":"alice","password":"pw"}'
    curl localhost:8000/bank/money -H "Authorization: Bearer <token>"
"""

import sys
from pathlib import Path

# Add the project root to the Python path if needed
project_root = Path(__file__).parent.parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from bankserver import BankServer, InMemoryBankingService

if __name__ == '__main__':
    server = BankServer(
        service=InMemoryBankingService(opening_balance=100),
        host='127.0.0.1',
        port=8000,
        base_path='bank',
        metrics_port=9100,
    )
    server.run()
