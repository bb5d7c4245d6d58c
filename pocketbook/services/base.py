from abc import ABC


class Service(ABC):
    name: str
    ready: bool = False

    def set_ready(self) -> None:
        self.ready = True

    async def teardown(self) -> None:
        return None
