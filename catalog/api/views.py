"""
Catalog API views.

Endpoints for:
- Starting and resuming processing runs, inspecting queues and the recovery log
- Running the equivalence analysis and curating its results
- Running the year-range matching

All endpoints require authentication; the run triggers are rate limited.
"""

import logging
from typing import Any, Dict

from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from catalog.api.throttling import MatchingThrottle, ProcessingTriggerThrottle
from catalog.models import (
    BrandEquivalence,
    ModelEquivalence,
    ProcessingQueue,
    ProcessingRecoveryLog,
)
from catalog.services.equivalence_resolver import get_equivalence_resolver
from catalog.services.recovery import RecoveryAction, get_recovery_supervisor
from catalog.services.year_range import get_year_range_deriver

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 200

EQUIVALENCE_MODELS = {
    'brands': BrandEquivalence,
    'models': ModelEquivalence,
}


def _list_limit(request) -> int:
    try:
        limit = int(request.query_params.get('limit', DEFAULT_LIST_LIMIT))
    except (TypeError, ValueError):
        return DEFAULT_LIST_LIMIT
    return max(1, min(limit, MAX_LIST_LIMIT))


def _parse_bool(value):
    if value is None:
        return None
    return str(value).lower() in ('1', 'true', 'yes')


def _queue_to_dict(queue: ProcessingQueue) -> Dict[str, Any]:
    return {
        'id': str(queue.id),
        'status': queue.status,
        'batch_size': queue.batch_size,
        'total_count': queue.total_count,
        'processed_count': queue.processed_count,
        'failed_count': queue.failed_count,
        'progress_percent': queue.progress_percent,
        'last_product_id': queue.last_product_id,
        'last_heartbeat': queue.last_heartbeat.isoformat() if queue.last_heartbeat else None,
        'error_message': queue.error_message,
        'created_at': queue.created_at.isoformat(),
        'started_at': queue.started_at.isoformat() if queue.started_at else None,
        'completed_at': queue.completed_at.isoformat() if queue.completed_at else None,
    }


def _recovery_log_to_dict(entry: ProcessingRecoveryLog) -> Dict[str, Any]:
    return {
        'id': str(entry.id),
        'recovery_type': entry.recovery_type,
        'queue_id': str(entry.queue_id) if entry.queue_id else None,
        'products_remaining': entry.products_remaining,
        'message': entry.message,
        'created_at': entry.created_at.isoformat(),
    }


def _equivalence_to_dict(equivalence) -> Dict[str, Any]:
    data = {
        'id': equivalence.id,
        'supplier_brand': equivalence.supplier_brand,
        'reference_brand': equivalence.reference_brand,
        'confidence_level': equivalence.confidence_level,
        'is_active': equivalence.is_active,
        'created_by': equivalence.created_by,
        'notes': equivalence.notes,
        'created_at': equivalence.created_at.isoformat(),
    }
    if isinstance(equivalence, ModelEquivalence):
        data['supplier_model'] = equivalence.supplier_model
        data['reference_model'] = equivalence.reference_model
    return data


# ============================================================
# Processing
# ============================================================

@extend_schema(
    tags=['Processing'],
    summary='Start a processing run',
    description='Create a pending processing run over all unprocessed products and dispatch a worker.',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'batch_size': {'type': 'integer', 'minimum': 1, 'maximum': 500},
            },
        }
    },
    responses={
        202: {'description': 'Run created and dispatched'},
        200: {'description': 'Nothing to do, or a run is already pending/processing'},
        400: {'description': 'Invalid batch_size'},
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ProcessingTriggerThrottle])
def start_processing(request):
    batch_size = request.data.get('batch_size')
    if batch_size is not None:
        try:
            batch_size = int(batch_size)
        except (TypeError, ValueError):
            batch_size = 0
        if not 1 <= batch_size <= 500:
            return Response(
                {'error': 'batch_size must be an integer between 1 and 500'},
                status=status.HTTP_400_BAD_REQUEST,
            )

    report = get_recovery_supervisor().start(batch_size=batch_size)
    logger.info(f"Processing start requested by {request.user}: {report.action}")

    http_status = status.HTTP_202_ACCEPTED if report.action == RecoveryAction.STARTED else status.HTTP_200_OK
    return Response(report.to_dict(), status=http_status)


@extend_schema(
    tags=['Processing'],
    summary='Run the recovery supervisor',
    description='''
    Mark stalled runs as error, then resume the oldest pending run or create
    a new one when unprocessed products remain. Same pass as the periodic task.
    ''',
    request=None,
    responses={200: {'description': 'Recovery report'}},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ProcessingTriggerThrottle])
def resume_processing(request):
    report = get_recovery_supervisor().run()
    return Response(report.to_dict())


@extend_schema(
    tags=['Processing'],
    summary='List processing runs',
    parameters=[
        OpenApiParameter('status', OpenApiTypes.STR, description='Filter by status'),
        OpenApiParameter('limit', OpenApiTypes.INT, description='Maximum number of runs (default 20)'),
    ],
    responses={200: {'description': 'Most recent runs first'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_queues(request):
    queues = ProcessingQueue.objects.all()
    status_filter = request.query_params.get('status')
    if status_filter:
        queues = queues.filter(status=status_filter)

    return Response({
        'results': [_queue_to_dict(q) for q in queues.order_by('-created_at')[:_list_limit(request)]],
    })


@extend_schema(
    tags=['Processing'],
    summary='Get a processing run',
    responses={200: {'description': 'Run detail'}, 404: {'description': 'Run not found'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_queue(request, queue_id):
    queue = get_object_or_404(ProcessingQueue, id=queue_id)
    data = _queue_to_dict(queue)
    data['recovery_log'] = [_recovery_log_to_dict(e) for e in queue.recovery_logs.all()]
    return Response(data)


@extend_schema(
    tags=['Processing'],
    summary='List recovery log entries',
    parameters=[
        OpenApiParameter('recovery_type', OpenApiTypes.STR, description='Filter by recovery type'),
        OpenApiParameter('limit', OpenApiTypes.INT, description='Maximum number of entries (default 20)'),
    ],
    responses={200: {'description': 'Most recent entries first'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_recovery_log(request):
    entries = ProcessingRecoveryLog.objects.all()
    recovery_type = request.query_params.get('recovery_type')
    if recovery_type:
        entries = entries.filter(recovery_type=recovery_type)

    return Response({
        'results': [
            _recovery_log_to_dict(e) for e in entries.order_by('-created_at')[:_list_limit(request)]
        ],
    })


# ============================================================
# Equivalences
# ============================================================

@extend_schema(
    tags=['Equivalences'],
    summary='Analyze brand and model equivalences',
    description='''
    Score supplier brand/model labels against the reference generation table
    and insert new equivalence proposals. Existing pairs are left untouched.
    ''',
    request=None,
    responses={
        200: {
            'description': 'Counts of the run',
            'content': {
                'application/json': {
                    'example': {
                        'brands_found': 3,
                        'models_found': 12,
                        'brand_pairs_scored': 480,
                        'model_pairs_scored': 950,
                    }
                }
            },
        },
        500: {'description': 'Analysis failed'},
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([MatchingThrottle])
def analyze_equivalences(request):
    try:
        result = get_equivalence_resolver().analyze()
    except Exception as e:
        logger.exception(f"Equivalence analysis failed: {e}")
        return Response(
            {'error': f'Analysis failed: {str(e)}'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return Response(result.to_dict())


@extend_schema(
    tags=['Equivalences'],
    summary='List brand equivalences',
    parameters=[
        OpenApiParameter('is_active', OpenApiTypes.BOOL),
        OpenApiParameter('confidence_level', OpenApiTypes.STR),
        OpenApiParameter('supplier_brand', OpenApiTypes.STR),
        OpenApiParameter('limit', OpenApiTypes.INT, description='Maximum number of rows (default 20)'),
    ],
    responses={200: {'description': 'Brand equivalences'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_brand_equivalences(request):
    equivalences = BrandEquivalence.objects.all()
    equivalences = _filter_equivalences(request, equivalences)
    return _equivalence_page(request, equivalences)


@extend_schema(
    tags=['Equivalences'],
    summary='List model equivalences',
    parameters=[
        OpenApiParameter('is_active', OpenApiTypes.BOOL),
        OpenApiParameter('confidence_level', OpenApiTypes.STR),
        OpenApiParameter('supplier_brand', OpenApiTypes.STR),
        OpenApiParameter('limit', OpenApiTypes.INT, description='Maximum number of rows (default 20)'),
    ],
    responses={200: {'description': 'Model equivalences'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_model_equivalences(request):
    equivalences = ModelEquivalence.objects.all()
    equivalences = _filter_equivalences(request, equivalences)
    return _equivalence_page(request, equivalences)


def _equivalence_page(request, queryset):
    return Response({
        'count': queryset.count(),
        'results': [_equivalence_to_dict(e) for e in queryset[:_list_limit(request)]],
    })


def _filter_equivalences(request, queryset):
    is_active = _parse_bool(request.query_params.get('is_active'))
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)

    confidence_level = request.query_params.get('confidence_level')
    if confidence_level:
        queryset = queryset.filter(confidence_level=confidence_level)

    supplier_brand = request.query_params.get('supplier_brand')
    if supplier_brand:
        queryset = queryset.filter(supplier_brand__iexact=supplier_brand)
    return queryset


def _get_equivalence(kind: str, pk: int):
    model = EQUIVALENCE_MODELS.get(kind)
    if model is None:
        return None
    return get_object_or_404(model, pk=pk)


@extend_schema(
    tags=['Equivalences'],
    summary='Toggle an equivalence',
    description='Flip is_active of a brand or model equivalence. kind is "brands" or "models".',
    request=None,
    responses={200: {'description': 'Updated equivalence'}, 404: {'description': 'Not found'}},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def toggle_equivalence(request, kind, pk):
    equivalence = _get_equivalence(kind, pk)
    if equivalence is None:
        return Response({'error': f'Unknown equivalence kind: {kind}'}, status=status.HTTP_404_NOT_FOUND)

    equivalence.toggle()
    logger.info(f"{request.user} set {equivalence} active={equivalence.is_active}")
    return Response(_equivalence_to_dict(equivalence))


@extend_schema(
    tags=['Equivalences'],
    summary='Delete an equivalence',
    request=None,
    responses={204: {'description': 'Deleted'}, 404: {'description': 'Not found'}},
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_equivalence(request, kind, pk):
    equivalence = _get_equivalence(kind, pk)
    if equivalence is None:
        return Response({'error': f'Unknown equivalence kind: {kind}'}, status=status.HTTP_404_NOT_FOUND)

    logger.info(f"{request.user} deleted {equivalence}")
    equivalence.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================
# Vehicle years
# ============================================================

@extend_schema(
    tags=['Vehicle years'],
    summary='Match vehicle years',
    description='Derive year_from / year_to for products from the reference generation table.',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'product_ids': {
                    'type': 'array',
                    'items': {'type': 'integer'},
                    'description': 'Restrict matching to these products (default: all)',
                },
            },
        }
    },
    responses={
        200: {
            'description': 'Counts of the run',
            'content': {
                'application/json': {
                    'example': {
                        'matched': 120,
                        'unmatched': 8,
                        'total': 128,
                        'message': 'Matched 120 products, 8 unmatched',
                    }
                }
            },
        },
        400: {'description': 'Invalid product_ids'},
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([MatchingThrottle])
def match_vehicle_years(request):
    product_ids = request.data.get('product_ids')
    if product_ids is not None:
        if not isinstance(product_ids, list):
            return Response(
                {'error': 'product_ids must be a list of integers'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            product_ids = [int(pid) for pid in product_ids]
        except (TypeError, ValueError):
            return Response(
                {'error': 'product_ids must be a list of integers'},
                status=status.HTTP_400_BAD_REQUEST,
            )

    result = get_year_range_deriver().run(product_ids=product_ids)
    return Response(result.to_dict())
