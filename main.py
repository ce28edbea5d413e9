from __future__ import annotations

import io
import tempfile
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, StreamingResponse

from tranching_engine.errors import ConfigurationError
from tranching_engine.runner import __version__, run_tranching_pack

app = FastAPI(title="CDO/CLO Tranching Engine", version=__version__)

_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _generate_pack(input_bytes: bytes) -> bytes:
    with tempfile.TemporaryDirectory() as td:
        td = Path(td)
        engine_input = td / "deal_input.xlsx"
        template = td / "tranching_template.xlsx"
        pack_out = td / "tranching_pack.xlsx"

        engine_input.write_bytes(input_bytes)
        run_tranching_pack(
            input_xlsx=str(engine_input),
            template_xlsx=str(template),
            output_xlsx=str(pack_out),
        )
        return pack_out.read_bytes()


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/", response_class=HTMLResponse)
def home():
    html = """
    <html>
      <head><title>CDO/CLO Tranching Engine</title></head>
      <body style="font-family: Arial, sans-serif; margin: 40px;">
        <h2>CDO/CLO Tranching Engine</h2>
        <p>POST a deal workbook (sheets <b>Deal</b>, <b>Tranches</b>, <b>Cashflows</b>) to
        <code>/tranching/pack</code> and get back the tranching pack (XLSX).</p>
        <pre>curl --data-binary @deal.xlsx -o pack.xlsx http://localhost:8000/tranching/pack</pre>
      </body>
    </html>
    """
    return html


@app.post("/tranching/pack")
async def tranching_pack(request: Request):
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="Request body must be an input workbook (.xlsx)")

    try:
        pack_bytes = await run_in_threadpool(_generate_pack, body)
    except ConfigurationError as exc:
        raise HTTPException(status_code=422, detail={"field": exc.field, "reason": exc.reason})

    return StreamingResponse(
        io.BytesIO(pack_bytes),
        media_type=_XLSX,
        headers={"Content-Disposition": 'attachment; filename="tranching_pack.xlsx"'},
    )
