import math  # 导入数学模块
import numpy as np  # 导入numpy库
import torch  # 导入PyTorch库
from ..data.basic_dataset import get_batch  # 导入稠密批次构建函数
from ..models.basic.ETM import normalize_bows  # 导入词袋归一化函数


def _check_halves(model, test1, test2):  # 定义验证半集检查函数
    for half in (test1, test2):  # 遍历两个半集
        if half.vocab_size != model.vocab_size:  # 词汇表大小不一致
            raise ValueError(f"held-out data has {half.vocab_size} terms but the model vocabulary has {model.vocab_size}")  # 抛出数值错误


def check_scorable_pairs(test1, test2):  # 定义可评估文档对检查函数
    """Raises ValueError unless at least one aligned pair of held-out
    documents has counts in both halves."""
    num_docs = min(len(test1), len(test2))  # 对齐的文档数量
    lengths_1 = test1.doc_lengths()[:num_docs]  # 第一半文档长度
    lengths_2 = test2.doc_lengths()[:num_docs]  # 第二半文档长度
    if not np.any((lengths_1 > 0) & (lengths_2 > 0)):  # 没有可评估的文档对
        raise ValueError("no held-out document pair with counts in both halves")  # 抛出数值错误


def document_completion_perplexity(model, test1, test2, batch_size, normalize=True):  # 定义文档补全困惑度函数
    """Document completion perplexity on held-out data.

    Topic proportions are inferred (deterministically, without dropout) from
    the documents of ``test1`` and used to score the aligned documents of
    ``test2``. Each document's negative log-likelihood is divided by its
    ``test2`` length, averaged over documents and exponentiated.

    Only the first ``min(len(test1), len(test2))`` document pairs are scored,
    pairs where either half is empty are skipped.

    Returns:
        A float rounded to one decimal.
    """
    _check_halves(model, test1, test2)  # 检查词汇表
    num_docs = min(len(test1), len(test2))  # 对齐的文档数量
    device = model.rho.device  # 模型所在设备

    with torch.no_grad():  # 不计算梯度
        beta = model.get_beta()  # 获取主题-词分布
        acc_loss = 0.  # 累计每词负对数似然
        cnt = 0  # 累计文档数量
        for ind in torch.split(torch.arange(num_docs), batch_size):  # 顺序遍历批次
            ind = ind.numpy()  # 转换批次索引
            ## get theta from first half of docs  # 从第一半文档推断主题分布
            data_batch_1 = get_batch(test1.tokens, test1.counts, ind, model.vocab_size).to(device)  # 第一半稠密批次
            theta, _ = model.get_theta(normalize_bows(data_batch_1, normalize), training=False)  # 推断主题分布

            ## get prediction loss using second half  # 用第二半文档计算预测损失
            data_batch_2 = get_batch(test2.tokens, test2.counts, ind, model.vocab_size).to(device)  # 第二半稠密批次
            sums_2 = data_batch_2.sum(1)  # 第二半文档长度
            preds = model.decode(theta, beta)  # 解码
            recon_loss = -(preds * data_batch_2).sum(1)  # 每篇文档的负对数似然

            keep = (sums_2 > 0) & (data_batch_1.sum(1) > 0)  # 两半均非空的文档
            acc_loss += (recon_loss[keep] / sums_2[keep]).sum().item()  # 累加每词负对数似然
            cnt += int(keep.sum().item())  # 累加文档数量

    if cnt == 0:  # 没有可评估的文档
        raise ValueError("no held-out document pair with counts in both halves")  # 抛出数值错误
    cur_loss = acc_loss / cnt  # 平均每词负对数似然
    ppl_dc = round(math.exp(cur_loss), 1)  # 计算困惑度并保留一位小数
    return ppl_dc  # 返回困惑度
