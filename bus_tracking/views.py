from __future__ import annotations

import json
import logging

from django.http import JsonResponse, StreamingHttpResponse
from django.views.generic import View

from .apps import get_hub
from .models import Bus

logger = logging.getLogger(__name__)


def format_event(message) -> str:
    return f"event: {message['event']}\ndata: {json.dumps(message)}\n\n"


class BusListAPIView(View):
    def get(self, request, *args, **kwargs):
        buses = Bus.objects.filter(status='active').values(
            'id', 'bus_number', 'direction', 'status', 'current_lat', 'current_lng'
        )
        return JsonResponse(list(buses), safe=False)


class BusStreamView(View):
    """Server-sent events feed of bus snapshots and per-tick updates."""

    async def get(self, request, *args, **kwargs):
        hub = get_hub()
        hub.start()
        subscription = await hub.attach()
        logger.info("Stream opened for %s", request.META.get('REMOTE_ADDR', 'unknown client'))

        async def events():
            try:
                async for message in subscription:
                    yield format_event(message)
            finally:
                hub.detach(subscription)

        response = StreamingHttpResponse(events(), content_type='text/event-stream')
        response['Cache-Control'] = 'no-cache'
        response['X-Accel-Buffering'] = 'no'
        return response
