import numpy as np  # 导入numpy库用于数值计算
import pandas as pd  # 导入pandas库


def get_top_words(beta, vocab, num_top_words, verbose=False):  # 定义获取主题词函数
    topic_str_list = list()  # 初始化主题词列表
    for i, topic_dist in enumerate(beta):  # 遍历每个主题分布
        order = np.argsort(-np.asarray(topic_dist), kind='stable')  # 按权重降序排列，稳定排序保持词表顺序
        topic_words = np.array(vocab)[order][:num_top_words]  # 获取主题词
        topic_str = ' '.join(topic_words)  # 将主题词连接成字符串
        topic_str_list.append(topic_str)  # 添加到主题词列表
        if verbose:  # 如果需要详细输出
            print('Topic {}: {}'.format(i, topic_str))  # 打印主题信息

    return topic_str_list  # 返回主题词列表


def get_top_terms(beta, vocab, num_top_words):  # 定义获取主题词及权重函数
    """Returns, for each topic row of beta, a DataFrame with the columns
    ``term`` and ``beta`` holding the top ``num_top_words`` terms sorted by
    descending weight. Ties keep vocabulary order.
    """
    out = list()  # 初始化结果列表
    vocab = np.asarray(vocab)  # 转换词汇表为数组
    for topic_dist in np.asarray(beta):  # 遍历每个主题分布
        order = np.argsort(-topic_dist, kind='stable')[:num_top_words]  # 稳定降序排序并截取前N个
        out.append(pd.DataFrame({'term': vocab[order], 'beta': topic_dist[order]}))  # 构建主题词表
    return out  # 返回每个主题的主题词表
