"""Realtime co-editing smoke test (automation-ready).

Creates a room as user A, joins it as user B through the edit link, opens two
collaboration websockets on the same file and checks that a change sent by A
reaches B and is not echoed back to A. Optionally runs a snippet through the
execution endpoint.

Usage (example):

```bash
python ops/smoke-tests/realtime_smoke.py \
    --api http://localhost:8000/api/v1 \
    --ws ws://localhost:8000/api/v1 \
    --token-a "$TOKEN_A" --token-b "$TOKEN_B"
```

Tokens are identity-provider JWTs for two different users.
Dependencies: `httpx`, `websockets`. Run inside the backend venv or install locally.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from typing import Any, Dict, Optional

import httpx
import websockets


async def create_room(api_base: str, token: str) -> Dict[str, Any]:
    headers = {'Authorization': f'Bearer {token}'}
    async with httpx.AsyncClient(base_url=api_base, headers=headers, timeout=30.0) as client:
        response = await client.post('/projects', json={'name': 'Realtime smoke test', 'language': 'python'})
        response.raise_for_status()
        project = response.json()

        response = await client.post(f"/projects/{project['id']}/files", json={'name': 'main.py', 'content': ''})
        response.raise_for_status()
        project['file_id'] = response.json()['id']

        response = await client.get(f"/projects/{project['id']}/share")
        response.raise_for_status()
        project['links'] = {link['role']: link for link in response.json()['links']}
        return project


async def join_room(api_base: str, token: str, room_code: str, secret: str) -> None:
    headers = {'Authorization': f'Bearer {token}'}
    async with httpx.AsyncClient(base_url=api_base, headers=headers, timeout=30.0) as client:
        response = await client.post('/join', json={'room_code': room_code, 'secret': secret})
        response.raise_for_status()
        if response.json().get('role') != 'edit':
            raise RuntimeError('Join did not grant edit: ' + json.dumps(response.json()))


async def delete_room(api_base: str, token: str, project_id: str) -> None:
    headers = {'Authorization': f'Bearer {token}'}
    async with httpx.AsyncClient(base_url=api_base, headers=headers, timeout=30.0) as client:
        await client.delete(f'/projects/{project_id}')


async def wait_for(ws, frame_type: str, timeout: float) -> Dict[str, Any]:
    async def _next() -> Dict[str, Any]:
        while True:
            frame = json.loads(await ws.recv())
            if frame.get('type') == frame_type:
                return frame
            if frame.get('type') == 'content_changed' and frame_type == 'pong':
                raise RuntimeError('Author received its own change back')

    return await asyncio.wait_for(_next(), timeout=timeout)


async def run_smoke(args: argparse.Namespace) -> None:
    api_base = args.api.rstrip('/')
    ws_base = args.ws.rstrip('/') if args.ws else api_base.replace('http', 'ws', 1)

    project = await create_room(api_base, args.token_a)
    try:
        await join_room(api_base, args.token_b, project['room_code'], project['links']['edit']['secret'])

        base_url = f"{ws_base}/projects/{project['id']}/collab/ws?file_id={project['file_id']}"
        async with websockets.connect(f'{base_url}&token={args.token_a}', ping_interval=None) as ws_a, \
                websockets.connect(f'{base_url}&token={args.token_b}', ping_interval=None) as ws_b:
            await wait_for(ws_a, 'connection_established', args.timeout)
            await wait_for(ws_b, 'connection_established', args.timeout)

            sample_text = args.sample or 'print("realtime smoke test")'
            await ws_a.send(json.dumps({
                'type': 'content_change',
                'file_id': project['file_id'],
                'content': sample_text,
            }))

            changed = await wait_for(ws_b, 'content_changed', args.timeout)
            if changed.get('content') != sample_text:
                raise RuntimeError('Receiver got unexpected content: ' + json.dumps(changed))

            await ws_a.send(json.dumps({'type': 'ping'}))
            await wait_for(ws_a, 'pong', args.timeout)

        if not args.skip_execute:
            headers = {'Authorization': f'Bearer {args.token_a}'}
            payload = {'code': 'print(6 * 7)', 'language': 'python'}
            async with httpx.AsyncClient(base_url=api_base, headers=headers, timeout=60.0) as client:
                response = await client.post('/execute', json=payload)
                response.raise_for_status()
                data = response.json()
                if not data.get('success') or '42' not in data.get('output', []):
                    raise RuntimeError('Execution did not succeed: ' + json.dumps(data))
    finally:
        await delete_room(api_base, args.token_a, project['id'])


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Realtime co-editing smoke test')
    parser.add_argument('--api', default=os.getenv('CR_API_BASE', 'http://localhost:8000/api/v1'))
    parser.add_argument('--ws', default=os.getenv('CR_WS_BASE'))
    parser.add_argument('--token-a', default=os.getenv('CR_TOKEN_A'), required=not os.getenv('CR_TOKEN_A'))
    parser.add_argument('--token-b', default=os.getenv('CR_TOKEN_B'), required=not os.getenv('CR_TOKEN_B'))
    parser.add_argument('--sample', default='print("realtime smoke test")')
    parser.add_argument('--timeout', type=float, default=5.0)
    parser.add_argument('--skip-execute', action='store_true')
    args = parser.parse_args(argv)

    asyncio.run(run_smoke(args))
    print('✅ Realtime smoke test passed')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
