# 管理 API
