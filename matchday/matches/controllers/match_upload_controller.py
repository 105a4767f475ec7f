from fastapi import APIRouter, UploadFile, File, Depends
from sqlalchemy.orm import Session
from matchday.core.database import get_db
from matchday.core.security import require_admin
from matchday.matches.services.match_upload_service import UploadService

router = APIRouter()

@router.post("/upload-results-csv/{league_id}")
def upload_results_csv(
    league_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),  # Session managed by FastAPI
    role: str = Depends(require_admin),
):
    """Upload finished results and delegate processing to the service layer."""
    upload_service = UploadService(db)
    return upload_service.import_results(file.file.read(), league_id)
