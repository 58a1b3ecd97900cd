"""Logger の共通設定

Handler は Logger(service=SERVICE_NAME) を生成して inject_lambda_context し、
その他のモジュールはモジュールレベルで Logger(service=SERVICE_NAME, child=True)
を生成して設定を引き継ぐ（child のロガー名は生成したモジュール名になる）。
"""

SERVICE_NAME = "trip-booking"
