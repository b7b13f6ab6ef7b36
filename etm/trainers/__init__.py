from .basic.ETM_trainer import ETMTrainer  # 导入ETM训练器
