
# client/lights_client.py
import asyncio, json, struct

from driftlight.constants import SOCK_PATH

class LightsClient:
    def __init__(self, sock=SOCK_PATH, tcp=None):
        self.sock = sock
        self.tcp = tcp
        self._id = 0

    async def _open(self):
        if self.tcp:
            host, port = self.tcp.rsplit(":", 1)
            return await asyncio.open_connection(host, int(port))
        return await asyncio.open_unix_connection(self.sock)

    def _pack(self, obj):
        b = json.dumps(obj, separators=(",",":")).encode()
        return struct.pack(">I", len(b)) + b

    async def _rpc(self, method, params=None):
        self._id += 1
        r, w = await self._open()
        w.write(self._pack({"id": self._id, "method": method, "params": params or {}}))
        await w.drain()
        hdr = await r.readexactly(4)
        (n,) = struct.unpack(">I", hdr)
        data = await r.readexactly(n)
        w.close(); await w.wait_closed()
        resp = json.loads(data.decode())
        if not resp.get("ok"):
            raise RuntimeError(resp.get("error"))
        return resp.get("result")

    async def state(self): return await self._rpc("get_state")
    async def config(self): return await self._rpc("get_config")
    async def set_param(self, name, value): return await self._rpc("set_param", {"name": name, "value": str(value)})
    async def publish(self, topic, payload): return await self._rpc("publish", {"topic": topic, "payload": str(payload)})
