import argparse
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from driftlight.client.lights_client import LightsClient
from driftlight.constants import SOCK_PATH
from driftlight.params import PARAMETERS

app = FastAPI()
lc: LightsClient | None = None

@app.get("/", response_class=HTMLResponse)
async def index():
    return """
<!doctype html><meta name=viewport content="width=device-width, initial-scale=1">
<style>label{display:block;font-size:1.4rem;margin:1rem .5rem;} input{width:100%;}</style>
<h1>Drift Light</h1>
<label>Lambda <input id=lambda type=range min=0 max=255 onchange="setp('lambda',this.value)"></label>
<label>Decay <input id=decay type=range min=0 max=255 onchange="setp('decay',this.value)"></label>
<label>Rate <input id=rate type=range min=1 max=255 onchange="setp('rate',this.value)"></label>
<script>
function setp(name,v){ fetch('/api/param/'+name+'/'+v,{method:'POST'}) }
fetch('/api/state').then(r=>r.json()).then(s=>{
  for (const k of ['lambda','decay','rate']) document.getElementById(k).value = s[k];
});
</script>
"""

@app.get("/api/state")
async def state():
    return await lc.state()

@app.get("/api/config")
async def config():
    return await lc.config()

@app.post("/api/param/{name}/{value}")
async def set_param(name: str, value: str):
    if name not in PARAMETERS:
        raise HTTPException(status_code=404, detail=f"unknown parameter '{name}'")
    try:
        result = await lc.set_param(name, value)
    except RuntimeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "state": result}

def main():
    global lc
    ap = argparse.ArgumentParser()
    ap.add_argument("--port", type=int, default=8080)
    ap.add_argument("--socket", default=SOCK_PATH)
    ap.add_argument("--tcp", default=None)
    args = ap.parse_args()
    lc = LightsClient(args.socket, tcp=args.tcp)
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=args.port)

if __name__ == "__main__":
    main()
