"""
证书签发服务的 FastAPI 路由定义。
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..config import config
from ..errors import CANotFound, DuplicateCA, InvalidIdentifier, MissingRequiredField
from ..store import core as store_core
from ..store.schemas import AvailableCertificate, StoreKind, TrustStoreConfig
from . import services
from .schemas import IssueCARequest, IssueCertRequest, IssuedCertificate, Toolchain

router = APIRouter(prefix="/certs", tags=["Certificates"])


def get_trust_store() -> TrustStoreConfig:
    return TrustStoreConfig(base_dir=config.config_dir)


def get_toolchain() -> Toolchain:
    return Toolchain.from_config(config)


@router.get("/ca", response_model=List[AvailableCertificate])
def list_ca(store: TrustStoreConfig = Depends(get_trust_store)) -> List[AvailableCertificate]:
    """
    列出可用于签名的 CA 根证书。
    """
    return store_core.list_available(store, StoreKind.CA)


@router.get("/leaf", response_model=List[AvailableCertificate])
def list_leaf(store: TrustStoreConfig = Depends(get_trust_store)) -> List[AvailableCertificate]:
    """
    列出已签发的叶子证书。
    """
    return store_core.list_available(store, StoreKind.LEAF)


@router.post("/ca", response_model=IssuedCertificate)
def issue_ca(
    req: IssueCARequest,
    store: TrustStoreConfig = Depends(get_trust_store),
    toolchain: Toolchain = Depends(get_toolchain),
) -> IssuedCertificate:
    """
    生成新的自签名 CA 根证书。
    """
    try:
        return services.generate_ca_cert(req, store, toolchain)
    except DuplicateCA as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (MissingRequiredField, InvalidIdentifier) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        # ExternalToolFailure / FileIOFailure
        raise HTTPException(status_code=500, detail=f"证书签发失败: {str(e)}")


@router.post("/issue", response_model=IssuedCertificate)
def issue_certificate(
    req: IssueCertRequest,
    store: TrustStoreConfig = Depends(get_trust_store),
    toolchain: Toolchain = Depends(get_toolchain),
) -> IssuedCertificate:
    """
    由指定 CA 签发叶子证书。
    """
    try:
        return services.generate_cert(req, store, toolchain)
    except CANotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (MissingRequiredField, InvalidIdentifier) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=f"证书签发失败: {str(e)}")
