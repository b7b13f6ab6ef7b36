from .perplexity import document_completion_perplexity  # 导入文档补全困惑度评估
from .topic_diversity import _diversity  # 导入主题多样性评估
from .topic_coherence import _coherence  # 导入主题一致性评估
from .topic_coherence import model_coherence  # 导入训练器主题一致性评估
