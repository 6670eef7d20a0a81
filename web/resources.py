"""
JSON resources for the switcher HTTP interface.

Each resource calls one or two driver operations. Driver errors propagate
to :func:`web.handlers.handle_switcher_error`, which maps them to HTTP
status codes, so responders only deal with the success path.

Classes:
    ConnectionResource: Session state, connect and disconnect
    VersionResource: Firmware version
    InfoResource: Switcher snapshot
    RoutesResource: All cross-points, immediate connect
    PathsResource: Stage a salvo path
    SalvoResource: Execute the staged salvo
    OutputResource: One output's input, disconnect output
    InputResource: Outputs driven by one input
    MemoryResource: Save and recall presets
    ResetResource: Reset and factory reset
    PatternResource: Stage (and optionally execute) an A/B pattern
"""

from typing import Callable, Optional

import falcon
from falcon import Request, Response

import switch_patterns
from .handlers import current_switcher, get_logger, read_body, require_bool, require_int


class SwitcherResource:
    """Base for resources that talk to the switcher."""

    def __init__(self, switcher_provider: Optional[Callable] = None):
        self._switcher_provider = switcher_provider or current_switcher
        self.logger = get_logger()

    @property
    def switcher(self):
        return self._switcher_provider()


class ConnectionResource(SwitcherResource):

    def on_get(self, req: Request, resp: Response) -> None:
        resp.media = self.switcher.get_debug_info()

    def on_put(self, req: Request, resp: Response) -> None:
        connected = require_bool(read_body(req), 'connected')
        switcher = self.switcher
        if connected:
            switcher.connect()
        else:
            switcher.disconnect()
        self.logger.info(f"Switcher {'connected' if connected else 'disconnected'} via API")
        resp.media = switcher.get_debug_info()


class VersionResource(SwitcherResource):

    def on_get(self, req: Request, resp: Response) -> None:
        resp.media = {'version': self.switcher.get_version()}


class InfoResource(SwitcherResource):

    def on_get(self, req: Request, resp: Response) -> None:
        info = self.switcher.get_switcher_info()
        resp.media = {
            'version': info.version,
            'unit_id': info.unit_id,
            'baud_rate': info.baud_rate,
            'matrix_size': {'inputs': info.matrix_size.inputs, 'outputs': info.matrix_size.outputs},
            'offset': {'input': info.offset.input, 'output': info.offset.output},
        }


class RoutesResource(SwitcherResource):

    def on_get(self, req: Request, resp: Response) -> None:
        connections = self.switcher.get_all_connections()
        resp.media = {
            'connections': [{'input': c.input, 'output': c.output} for c in connections]
        }

    def on_post(self, req: Request, resp: Response) -> None:
        body = read_body(req)
        input_num, output_num = require_int(body, 'input'), require_int(body, 'output')
        self.switcher.connect_input_to_output(input_num, output_num)
        resp.media = {'input': input_num, 'output': output_num}


class PathsResource(SwitcherResource):

    def on_post(self, req: Request, resp: Response) -> None:
        body = read_body(req)
        input_num, output_num = require_int(body, 'input'), require_int(body, 'output')
        self.switcher.set_path(input_num, output_num)
        resp.media = {'input': input_num, 'output': output_num, 'staged': True}


class SalvoResource(SwitcherResource):

    def on_post(self, req: Request, resp: Response) -> None:
        self.switcher.execute_switch()
        resp.media = {'executed': True}


class OutputResource(SwitcherResource):

    def on_get(self, req: Request, resp: Response, output: int) -> None:
        resp.media = {'output': output, 'input': self.switcher.get_output_connection(output)}

    def on_delete(self, req: Request, resp: Response, output: int) -> None:
        self.switcher.disconnect_output(output)
        resp.media = {'output': output, 'input': 0}


class InputResource(SwitcherResource):

    def on_get(self, req: Request, resp: Response, input: int) -> None:
        resp.media = {'input': input, 'outputs': self.switcher.get_input_connections(input)}


class MemoryResource(SwitcherResource):

    def on_post(self, req: Request, resp: Response, slot: int) -> None:
        action = read_body(req).get('action')
        if action == 'save':
            self.switcher.save_memory(slot)
        elif action == 'recall':
            self.switcher.recall_memory(slot)
        else:
            raise falcon.HTTPBadRequest(
                title='Invalid parameter',
                description="'action' must be 'save' or 'recall'"
            )
        resp.media = {'slot': slot, 'action': action}


class ResetResource(SwitcherResource):

    def on_post(self, req: Request, resp: Response) -> None:
        body = read_body(req)
        factory = require_bool(body, 'factory') if 'factory' in body else False
        if factory:
            self.switcher.reset_to_defaults()
        else:
            self.switcher.reset()
        resp.media = {'reset': True, 'factory': factory}


class PatternResource(SwitcherResource):

    def on_post(self, req: Request, resp: Response, name: str) -> None:
        body = read_body(req)
        n_switches = require_int(body, 'n_switches') if 'n_switches' in body else 0
        execute = require_bool(body, 'execute') if 'execute' in body else False
        switch_patterns.apply_pattern(self.switcher, name, n_switches=n_switches, execute=execute)
        resp.media = {'pattern': name, 'n_switches': n_switches, 'executed': execute}
