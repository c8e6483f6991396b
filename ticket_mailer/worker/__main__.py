"""Worker package entry point.

Runs the poller without the HTTP surface: python -m ticket_mailer.worker
"""

import asyncio

from ticket_mailer.worker.poller import main

if __name__ == "__main__":
    asyncio.run(main())
