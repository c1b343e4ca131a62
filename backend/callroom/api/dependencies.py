"""공유 API dependencies

게이트웨이와 LiveKit 서비스는 lifespan에서 생성되어 app.state에 보관됩니다.
"""

from typing import Annotated

from fastapi import Depends, Request

from callroom.services.livekit_service import LiveKitService
from callroom.services.token_gateway import TokenGateway


def get_token_gateway(request: Request) -> TokenGateway:
    """TokenGateway 의존성"""
    return request.app.state.token_gateway


def get_livekit_service(request: Request) -> LiveKitService:
    """LiveKitService 의존성"""
    return request.app.state.livekit_service


GatewayDep = Annotated[TokenGateway, Depends(get_token_gateway)]
LiveKitDep = Annotated[LiveKitService, Depends(get_livekit_service)]
