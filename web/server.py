#!/usr/bin/env python3
"""
Web server for the Brood War replay timeline
Run: python server.py
Then POST a replay as multipart form data to http://localhost:9090/analyze
"""

import argparse
import json
import os
import sys
import traceback
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional

from python_multipart import parse_form
from python_multipart.exceptions import FormParserError

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import ServerConfig
from errors import ReplayTimelineError
from parse_screp import ScrepParser
from replay_analyzers import build_envelope, get_profile
from replay_ingest import ingest_replay

CORS_ALLOW_METHODS = 'GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS'
CORS_ALLOW_HEADERS = 'Origin, Content-Length, Content-Type'
CORS_MAX_AGE = str(12 * 60 * 60)


@dataclass
class Upload:
    filename: str
    data: bytes


def read_upload(headers, stream, field_name: str = 'file') -> Optional[Upload]:
    """Read the named file field from a multipart/form-data request body.

    Returns None if the request is not multipart or has no such file field.
    """
    content_type = headers.get('Content-Type') or ''
    content_length = headers.get('Content-Length')
    if not content_type.lower().startswith('multipart/form-data') or not content_length:
        return None

    wanted = field_name.encode()
    files = []

    def on_field(field):
        pass

    # The parser still flushes each file after this callback, so close them afterwards
    def on_file(file):
        files.append(file)

    try:
        parse_form(
            {'Content-Type': content_type, 'Content-Length': content_length},
            stream,
            on_field,
            on_file,
        )
        for file in files:
            if file.field_name == wanted:
                file.file_object.seek(0)
                filename = (file.file_name or b'').decode('utf-8', 'replace')
                return Upload(filename=filename, data=file.file_object.read())
        return None
    finally:
        for file in files:
            file.close()


class ReplayTimelineServer(ThreadingHTTPServer):
    """HTTP server holding the per-process settings shared by all requests."""

    daemon_threads = True

    def __init__(self, server_address, config: ServerConfig, parser=None):
        self.config = config
        self.profile = get_profile(config.profile)
        self.parser = parser or ScrepParser(config.screp_path, timeout=config.parse_timeout)
        super().__init__(server_address, ReplayHandler)


class ReplayHandler(BaseHTTPRequestHandler):
    server: ReplayTimelineServer

    def do_OPTIONS(self):
        self.send_response(204)
        self.send_cors_headers()
        self.send_header('Access-Control-Allow-Methods', CORS_ALLOW_METHODS)
        self.send_header('Access-Control-Allow-Headers', CORS_ALLOW_HEADERS)
        self.send_header('Access-Control-Max-Age', CORS_MAX_AGE)
        self.send_header('Content-Length', '0')
        self.end_headers()

    def do_GET(self):
        self.send_json({'error': 'Not found'}, 404)

    def do_POST(self):
        if self.path.split('?', 1)[0] == '/analyze':
            self.handle_analyze()
        else:
            self.send_json({'error': 'Not found'}, 404)

    def send_cors_headers(self):
        origins = self.server.config.cors_origins
        if '*' in origins:
            self.send_header('Access-Control-Allow-Origin', '*')
            return
        origin = self.headers.get('Origin')
        if origin and origin in origins:
            self.send_header('Access-Control-Allow-Origin', origin)
            self.send_header('Vary', 'Origin')

    def send_json(self, data, status=200):
        response = json.dumps(data, ensure_ascii=False).encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'application/json; charset=utf-8')
        self.send_header('Content-Length', str(len(response)))
        self.send_cors_headers()
        self.end_headers()
        self.wfile.write(response)

    def handle_analyze(self):
        """Parse an uploaded replay and return its timeline"""
        try:
            upload = read_upload(self.headers, self.rfile, self.server.config.upload_field)
        except (FormParserError, ValueError) as e:
            print(f"File upload error: {e}")
            self.send_json({'error': 'No file is received'}, 400)
            return

        if upload is None:
            print(f"File upload error: no '{self.server.config.upload_field}' field in request")
            self.send_json({'error': 'No file is received'}, 400)
            return
        print(f"Received file: {upload.filename}")

        try:
            replay = ingest_replay(upload.data, self.server.parser)
            envelope = build_envelope(replay, self.server.profile)
        except ReplayTimelineError as e:
            print(f"{e.message}: {e}")
            self.send_json({'error': e.message}, e.status)
            return
        except Exception:
            print(f"\n{'='*60}")
            print(f"ERROR analyzing uploaded replay: {upload.filename}")
            print(f"{'='*60}")
            traceback.print_exc()
            print(f"{'='*60}\n")
            self.send_json({'error': 'Internal server error'}, 500)
            return

        self.send_json(envelope.to_dict())


def main(argv=None):
    arg_parser = argparse.ArgumentParser(description='Brood War replay timeline server')
    arg_parser.add_argument('--host', help='Interface to bind (default: all)')
    arg_parser.add_argument('--port', type=int, help='Port to listen on (default: 9090)')
    arg_parser.add_argument('--profile', help='Classification profile: full or build-order')
    arg_parser.add_argument('--screp', dest='screp_path', help='Path to the screp executable')
    args = arg_parser.parse_args(argv)

    config = ServerConfig.from_env().override(
        host=args.host,
        port=args.port,
        profile=args.profile,
        screp_path=args.screp_path,
    )

    server = ReplayTimelineServer((config.host, config.port), config)
    print(f"Replay timeline server running on port {config.port} (profile: {config.profile})")
    print(f"Parser: {config.screp_path}")
    print("Press Ctrl+C to stop")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.server_close()


if __name__ == '__main__':
    main()
