import asyncio
import sys

from cordage import *

__prog__ = "remote"


class Settings:
    verbose = Switch("-v", "--verbose", descr="print more details")


class Remote:
    """a toy remote repository."""

    message = Property("-m", required=True, explicit=True, descr="commit message")
    force = Switch("-f", "--force", descr="overwrite the remote state")

    def __init__(self):
        self.online = True

    def can_push(self):
        return self.online

    @command(properties=("message",), contexts=(Settings,))
    def commit(self, target, branch=None):
        """record a change."""
        print(f"commit {target}@{branch or 'main'}: {self.message}")

    @command(aliases=("p",), properties=("force",))
    def push(self, target, *files):
        """push files to a target."""
        print(f"push {', '.join(files) or 'nothing'} to {target}{' (forced)' if self.force else ''}")

    @command
    async def fetch_async(self, url, cancel: asyncio.Event):
        """fetch a remote url."""
        await asyncio.sleep(0)
        print(f"fetched {url}")


if __name__ == '__main__':
    sys.exit(CommandLine(Remote(), contexts=(Settings(),), shell=True).run())
