from approvalgrid.delivery.api.routes.admin.agencies import router as agencies
from approvalgrid.delivery.api.routes.admin.settings import router as settings

admin_routers = [
    settings,
    agencies,
]
